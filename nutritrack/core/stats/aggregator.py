"""
Population Statistics Aggregator

Turns patient store averages into one `CategoryStat` per HEIFA category,
split by gender. Missing averages become 0.0 so downstream prompts never
see a null score.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from nutritrack.core.stats.patient_store import (
    COMPONENT_SCORES,
    PatientRecord,
    PatientStore,
    Sex,
)
from nutritrack.utils import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORIES = (
    "vegetables",
    "fruits",
    "grains",
    "protein",
    "dairy",
    "water",
    "sodium",
    "unsaturated_fat",
)

DEFAULT_MAX_SCORE = 10.0
MAX_SCORES: Dict[str, float] = {category: 5.0 for category in DEFAULT_CATEGORIES}

SERVE_UNITS: Dict[str, str] = {
    "vegetables": "serves/day",
    "fruits": "serves/day",
    "protein": "serves/day",
    "water": "mL/day",
}

# Display name -> accessor used by the readiness check
KEY_AREAS = {
    "Vegetables": COMPONENT_SCORES["vegetables"],
    "Fruits": COMPONENT_SCORES["fruits"],
    "Protein": COMPONENT_SCORES["protein"],
    "Water": COMPONENT_SCORES["water"],
    "Discretionary": COMPONENT_SCORES["discretionary"],
}


def display_name(category: str) -> str:
    """`unsaturated_fat` -> `Unsaturated fat`."""
    text = category.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


def _fmt(value: float) -> str:
    return f"{value:.2f}"


@dataclass
class CategoryStat:
    """Gender-split summary of one HEIFA category."""
    component: str
    male_score: float
    female_score: float
    max_score: float
    male_avg_serve_size: Optional[float] = None
    female_avg_serve_size: Optional[float] = None
    serve_unit: Optional[str] = None

    @property
    def category(self) -> str:
        return self.component.strip().lower().replace(" ", "_")

    def findings(self) -> str:
        """Findings block embedded in the insight prompt."""
        lines = [
            f"Category: {self.component}",
            f"Male HEIFA Score: {_fmt(self.male_score)}/{_fmt(self.max_score)}",
            f"Female HEIFA Score: {_fmt(self.female_score)}/{_fmt(self.max_score)}",
        ]
        unit = self.serve_unit or ""
        if self.male_avg_serve_size is not None:
            lines.append(f"Male Avg Intake: {_fmt(self.male_avg_serve_size)} {unit}".rstrip())
        if self.female_avg_serve_size is not None:
            lines.append(f"Female Avg Intake: {_fmt(self.female_avg_serve_size)} {unit}".rstrip())
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "category": self.category,
            "male_score": round(self.male_score, 2),
            "female_score": round(self.female_score, 2),
            "max_score": self.max_score,
            "male_avg_serve_size": self.male_avg_serve_size,
            "female_avg_serve_size": self.female_avg_serve_size,
            "serve_unit": self.serve_unit,
        }


@dataclass
class PopulationSummary:
    total: int = 0
    male: int = 0
    female: int = 0
    male_average_score: float = 0.0
    female_average_score: float = 0.0

    @property
    def context_line(self) -> str:
        return (
            f"Data based on approximately {self.male} male and {self.female} female "
            f"patients from a total of {self.total} patients."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "male": self.male,
            "female": self.female,
            "male_average_score": round(self.male_average_score, 2),
            "female_average_score": round(self.female_average_score, 2),
            "context": self.context_line,
        }


@dataclass
class ReadinessReport:
    has_patients: bool = False
    patients_with_data: int = 0
    missing_areas: List[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.has_patients and self.patients_with_data > 0 and not self.missing_areas

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_ready": self.is_ready,
            "has_patients": self.has_patients,
            "patients_with_data": self.patients_with_data,
            "missing_areas": list(self.missing_areas),
        }


class PopulationStatsAggregator:
    """Builds category statistics from a `PatientStore`."""

    def __init__(self, store: PatientStore, categories: Sequence[str] = DEFAULT_CATEGORIES):
        self.store = store
        self.categories = tuple(categories)

    async def aggregate(self, categories: Optional[Sequence[str]] = None) -> List[CategoryStat]:
        stats = []
        for category in categories or self.categories:
            stats.append(await self._category_stat(category))
        logger.info(f"Aggregated {len(stats)} category statistics")
        return stats

    async def _category_stat(self, category: str) -> CategoryStat:
        male = await self.store.average_component_score(category, Sex.MALE)
        female = await self.store.average_component_score(category, Sex.FEMALE)

        unit = SERVE_UNITS.get(category)
        male_serve = female_serve = None
        if unit is not None:
            male_serve = await self.store.average_serve_size(category, Sex.MALE)
            female_serve = await self.store.average_serve_size(category, Sex.FEMALE)

        return CategoryStat(
            component=display_name(category),
            male_score=male if male is not None else 0.0,
            female_score=female if female is not None else 0.0,
            max_score=MAX_SCORES.get(category, DEFAULT_MAX_SCORE),
            male_avg_serve_size=male_serve,
            female_avg_serve_size=female_serve,
            serve_unit=unit,
        )

    async def summarize(self) -> PopulationSummary:
        male_avg = await self.store.average_total_score(Sex.MALE)
        female_avg = await self.store.average_total_score(Sex.FEMALE)
        return PopulationSummary(
            total=await self.store.count_patients(),
            male=await self.store.count_patients(Sex.MALE),
            female=await self.store.count_patients(Sex.FEMALE),
            male_average_score=male_avg or 0.0,
            female_average_score=female_avg or 0.0,
        )

    async def check_readiness(self) -> ReadinessReport:
        patients: List[PatientRecord] = await self.store.list_patients()
        report = ReadinessReport(
            has_patients=bool(patients),
            patients_with_data=sum(1 for p in patients if p.has_nutrition_data()),
        )
        for area, accessor in KEY_AREAS.items():
            if not any(accessor(p) is not None for p in patients):
                report.missing_areas.append(area)

        if not report.is_ready:
            logger.warning(f"Population data incomplete: {report.to_dict()}")
        return report
