"""
Patient Store

Read interface over the patient population plus an in-memory implementation.
Each HEIFA category has its own typed optional field on `PatientRecord`;
`None` means the patient has no data for that category.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np

from nutritrack.utils import get_logger

logger = get_logger(__name__)


class Sex(str, Enum):
    MALE = "Male"
    FEMALE = "Female"

    @classmethod
    def parse(cls, value: "str | Sex") -> "Sex":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalized or member.name.lower() == normalized:
                return member
        raise ValueError(f"Unknown sex: {value!r}")


@dataclass
class PatientRecord:
    """
    One patient's HEIFA results.

    Scores are the patient's own gender-specific HEIFA sub-scores. Serve
    sizes are only tracked for the categories that have a dedicated intake
    measure.
    """
    user_id: str
    sex: Sex
    total_score: Optional[float] = None

    vegetables_score: Optional[float] = None
    fruits_score: Optional[float] = None
    grains_score: Optional[float] = None
    protein_score: Optional[float] = None
    dairy_score: Optional[float] = None
    water_score: Optional[float] = None
    sodium_score: Optional[float] = None
    unsaturated_fat_score: Optional[float] = None
    discretionary_score: Optional[float] = None
    alcohol_score: Optional[float] = None
    sugar_score: Optional[float] = None

    vegetable_serves: Optional[float] = None
    fruit_serves: Optional[float] = None
    protein_serves: Optional[float] = None
    water_ml: Optional[float] = None

    def __post_init__(self):
        self.sex = Sex.parse(self.sex)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatientRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sex"] = self.sex.value
        return data

    def has_nutrition_data(self) -> bool:
        return self.total_score is not None


# Category name -> accessor for the patient's score in that category
COMPONENT_SCORES: Dict[str, Callable[[PatientRecord], Optional[float]]] = {
    "vegetables": lambda p: p.vegetables_score,
    "fruits": lambda p: p.fruits_score,
    "grains": lambda p: p.grains_score,
    "protein": lambda p: p.protein_score,
    "dairy": lambda p: p.dairy_score,
    "water": lambda p: p.water_score,
    "sodium": lambda p: p.sodium_score,
    "unsaturated_fat": lambda p: p.unsaturated_fat_score,
    "discretionary": lambda p: p.discretionary_score,
    "alcohol": lambda p: p.alcohol_score,
    "sugar": lambda p: p.sugar_score,
}

# Category name -> accessor for the patient's average daily intake
SERVE_SIZES: Dict[str, Callable[[PatientRecord], Optional[float]]] = {
    "vegetables": lambda p: p.vegetable_serves,
    "fruits": lambda p: p.fruit_serves,
    "protein": lambda p: p.protein_serves,
    "water": lambda p: p.water_ml,
}


class PatientStore(ABC):
    """Narrow async read interface consumed by the stats aggregator."""

    @abstractmethod
    async def count_patients(self, sex: Optional[Sex] = None) -> int:
        ...

    @abstractmethod
    async def average_component_score(self, category: str, sex: Sex) -> Optional[float]:
        """Mean score for `category` within one gender, None when no patient has data."""

    @abstractmethod
    async def average_serve_size(self, category: str, sex: Sex) -> Optional[float]:
        """Mean intake for `category` within one gender, None when not tracked."""

    @abstractmethod
    async def average_total_score(self, sex: Sex) -> Optional[float]:
        ...

    @abstractmethod
    async def list_patients(self) -> List[PatientRecord]:
        ...


def _mean(values: Iterable[Optional[float]]) -> Optional[float]:
    present = np.array([v for v in values if v is not None], dtype=float)
    if present.size == 0:
        return None
    return float(np.mean(present))


class InMemoryPatientStore(PatientStore):
    """PatientStore over a list of records held in memory."""

    def __init__(self, records: Optional[Iterable[PatientRecord]] = None):
        self._records: List[PatientRecord] = list(records or [])

    def replace(self, records: Iterable[PatientRecord]) -> None:
        self._records = list(records)
        logger.info(f"Patient store loaded with {len(self._records)} records")

    def _by_sex(self, sex: Sex) -> List[PatientRecord]:
        return [p for p in self._records if p.sex == sex]

    async def count_patients(self, sex: Optional[Sex] = None) -> int:
        if sex is None:
            return len(self._records)
        return len(self._by_sex(sex))

    async def average_component_score(self, category: str, sex: Sex) -> Optional[float]:
        accessor = COMPONENT_SCORES.get(category)
        if accessor is None:
            return None
        return _mean(accessor(p) for p in self._by_sex(sex))

    async def average_serve_size(self, category: str, sex: Sex) -> Optional[float]:
        accessor = SERVE_SIZES.get(category)
        if accessor is None:
            return None
        return _mean(accessor(p) for p in self._by_sex(sex))

    async def average_total_score(self, sex: Sex) -> Optional[float]:
        return _mean(p.total_score for p in self._by_sex(sex))

    async def list_patients(self) -> List[PatientRecord]:
        return list(self._records)
