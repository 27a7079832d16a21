"""
Insight Orchestrator

Fans out one language model call per category, validates each JSON reply
and publishes the successful results as a single new insight list. A
failing category never affects its siblings.
"""
import asyncio
import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from nutritrack.core.llm.base import LanguageModelClient
from nutritrack.core.llm.prompts import build_insight_prompt
from nutritrack.core.stats.aggregator import (
    CategoryStat,
    PopulationStatsAggregator,
    PopulationSummary,
)
from nutritrack.utils import (
    get_logger,
    EmptyResultError,
    MalformedResponseError,
    NutriTrackError,
    PreconditionError,
)

logger = get_logger(__name__)

NOT_READY_MESSAGE = "Component data not ready. Please try again shortly."
EMPTY_RESULT_MESSAGE = "An error occurred while generating insights."
DEFAULT_DESCRIPTION = "No description provided."


class InsightRunStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    EMPTY = "empty"
    NOT_READY = "not_ready"


@dataclass(frozen=True)
class Insight:
    """AI-generated description and recommendations for one category."""
    title: str
    description: str
    category: str
    recommendations: Tuple[str, ...] = ()
    patient_count: int = 0
    is_new: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "recommendations": list(self.recommendations),
            "patient_count": self.patient_count,
            "is_new": self.is_new,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class InsightRunResult:
    status: InsightRunStatus
    insights: List[Insight] = field(default_factory=list)
    requested: int = 0
    failed_categories: List[str] = field(default_factory=list)
    error: Optional[NutriTrackError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "requested": self.requested,
            "generated": len(self.insights),
            "failed_categories": list(self.failed_categories),
            "insights": [i.to_dict() for i in self.insights],
            "error": self.error.to_dict() if self.error else None,
        }


def strip_code_fence(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
        cleaned = cleaned.strip()
    return cleaned


def parse_insight_payload(raw: str, category: str = "unknown") -> Tuple[str, List[str]]:
    """
    Validate a model reply and return `(description, recommendations)`.

    Raises:
        MalformedResponseError: reply is not a JSON object of the expected shape
    """
    cleaned = strip_code_fence(raw)
    if not (cleaned.startswith("{") and cleaned.endswith("}")):
        raise MalformedResponseError(
            "Expected a JSON object", category=category, details={"response": raw[:200]}
        )
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Invalid JSON: {e}", category=category, details={"response": raw[:200]}
        ) from e
    if not isinstance(payload, dict):
        raise MalformedResponseError("Expected a JSON object", category=category)

    description = payload.get("description")
    if description is None:
        description = DEFAULT_DESCRIPTION

    recommendations = payload.get("recommendations")
    if recommendations is None:
        recommendations = []
    if not isinstance(recommendations, list):
        raise MalformedResponseError("'recommendations' must be a list", category=category)

    return str(description), [str(r) for r in recommendations]


class InsightOrchestrator:
    """
    Owns the insight collection shown on the clinician dashboard.

    The collection is only ever replaced wholesale, so readers always see
    either the previous run's insights or the new run's, never a mix.
    """

    def __init__(self, client: LanguageModelClient, call_timeout_seconds: float = 30.0):
        self.client = client
        self.call_timeout_seconds = call_timeout_seconds
        self._insights: Tuple[Insight, ...] = ()
        self._run_lock = asyncio.Lock()
        self._is_analyzing = False

    @property
    def insights(self) -> List[Insight]:
        return list(self._insights)

    @property
    def is_analyzing(self) -> bool:
        return self._is_analyzing

    def get(self, insight_id: str) -> Optional[Insight]:
        return next((i for i in self._insights if i.id == insight_id), None)

    def insights_by_category(self, category: str) -> List[Insight]:
        return [i for i in self._insights if i.category == category]

    def mark_as_read(self, insight_id: str) -> Optional[Insight]:
        """Flip `is_new` off. Unknown ids and already-read insights are left alone."""
        updated = None
        new_list = []
        for insight in self._insights:
            if insight.id == insight_id and insight.is_new:
                insight = replace(insight, is_new=False)
                updated = insight
            new_list.append(insight)
        if updated is not None:
            self._insights = tuple(new_list)
        return updated or self.get(insight_id)

    async def analyze(
        self, aggregator: PopulationStatsAggregator, language: str = "en"
    ) -> InsightRunResult:
        """Aggregate population statistics, then generate insights from them."""
        stats = await aggregator.aggregate()
        population = await aggregator.summarize()
        return await self.generate_insights(stats, population, language)

    async def generate_insights(
        self,
        stats: Sequence[CategoryStat],
        population: PopulationSummary,
        language: str = "en",
    ) -> InsightRunResult:
        if not stats:
            logger.error("Insight generation requested before component data was loaded")
            return InsightRunResult(
                status=InsightRunStatus.NOT_READY,
                error=PreconditionError(NOT_READY_MESSAGE),
            )

        async with self._run_lock:
            self._is_analyzing = True
            try:
                results = await self._fan_out(stats, population, language)
            finally:
                self._is_analyzing = False

            insights = [r for r in results if r is not None]
            failed = [s.category for s, r in zip(stats, results) if r is None]
            self._insights = tuple(insights)

        if not insights:
            status = InsightRunStatus.EMPTY
            error = EmptyResultError(EMPTY_RESULT_MESSAGE, details={"failed_categories": failed})
        else:
            status = InsightRunStatus.PARTIAL if failed else InsightRunStatus.COMPLETED
            error = None

        logger.info(
            f"Insight run {status.value}: {len(insights)}/{len(stats)} categories succeeded"
        )
        return InsightRunResult(
            status=status,
            insights=insights,
            requested=len(stats),
            failed_categories=failed,
            error=error,
        )

    async def _fan_out(
        self,
        stats: Sequence[CategoryStat],
        population: PopulationSummary,
        language: str,
    ) -> List[Optional[Insight]]:
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._generate_one(stat, population, language), name=stat.category)
                for stat in stats
            ]
        return [t.result() for t in tasks]

    async def _generate_one(
        self,
        stat: CategoryStat,
        population: PopulationSummary,
        language: str,
    ) -> Optional[Insight]:
        category = stat.category
        prompt = build_insight_prompt(
            category_name=stat.component,
            findings=stat.findings(),
            population_context=population.context_line,
            language=language,
        )
        try:
            logger.debug(f"Requesting insight for {category}")
            raw = await asyncio.wait_for(
                self.client.generate(prompt), timeout=self.call_timeout_seconds
            )
            description, recommendations = parse_insight_payload(raw, category)
        except asyncio.TimeoutError:
            logger.error(f"Insight for {category} timed out after {self.call_timeout_seconds}s")
            return None
        except Exception as e:
            logger.error(f"Error generating or parsing insight for {stat.component}: {e}")
            return None

        return Insight(
            title=f"{stat.component} Analysis",
            description=description,
            category=category,
            recommendations=tuple(recommendations),
            patient_count=population.total,
        )
