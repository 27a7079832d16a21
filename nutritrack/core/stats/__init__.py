"""
Population Statistics Module
"""
from .patient_store import PatientRecord, PatientStore, InMemoryPatientStore, Sex
from .aggregator import (
    CategoryStat,
    PopulationSummary,
    PopulationStatsAggregator,
    ReadinessReport,
    DEFAULT_CATEGORIES,
)

__all__ = [
    "PatientRecord",
    "PatientStore",
    "InMemoryPatientStore",
    "Sex",
    "CategoryStat",
    "PopulationSummary",
    "PopulationStatsAggregator",
    "ReadinessReport",
    "DEFAULT_CATEGORIES",
]
