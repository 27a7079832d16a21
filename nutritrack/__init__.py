"""
NutriTrack Insights

Population nutrition statistics, AI-generated per-category insights, a
nutrition chat assistant and a memoizing translation layer for the
NutriTrack clinician dashboard.
"""
__version__ = "1.0.0"
