"""
AI Insights Module
"""
from .orchestrator import (
    Insight,
    InsightOrchestrator,
    InsightRunResult,
    InsightRunStatus,
    parse_insight_payload,
    strip_code_fence,
)

__all__ = [
    "Insight",
    "InsightOrchestrator",
    "InsightRunResult",
    "InsightRunStatus",
    "parse_insight_payload",
    "strip_code_fence",
]
