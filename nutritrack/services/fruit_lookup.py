"""
Fruit nutrition lookup with localized names.

Talks to the public Fruityvice API and runs fruit names through the shared
TranslationCache so the dashboard can show them in the clinician's language.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import httpx

from nutritrack.config import DEFAULT_FRUIT_API_URL
from nutritrack.services.translation import TranslationCache
from nutritrack.utils import get_logger, FruitLookupError, FruitNotFoundError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Nutritions:
    calories: float = 0.0
    fat: float = 0.0
    sugar: float = 0.0
    carbohydrates: float = 0.0
    protein: float = 0.0
    fiber: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Nutritions":
        return cls(**{
            key: float(data.get(key) or 0.0)
            for key in ("calories", "fat", "sugar", "carbohydrates", "protein", "fiber")
        })

    def to_dict(self) -> Dict[str, float]:
        return {
            "calories": self.calories,
            "fat": self.fat,
            "sugar": self.sugar,
            "carbohydrates": self.carbohydrates,
            "protein": self.protein,
            "fiber": self.fiber,
        }


@dataclass(frozen=True)
class Fruit:
    id: int
    name: str
    family: str = ""
    genus: str = ""
    order: str = ""
    nutritions: Nutritions = field(default_factory=Nutritions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fruit":
        return cls(
            id=int(data.get("id", 0)),
            name=str(data.get("name", "")),
            family=str(data.get("family", "")),
            genus=str(data.get("genus", "")),
            order=str(data.get("order", "")),
            nutritions=Nutritions.from_dict(data.get("nutritions") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "family": self.family,
            "genus": self.genus,
            "order": self.order,
            "nutritions": self.nutritions.to_dict(),
        }


class FruitLookupClient:
    """Async client for the Fruityvice REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_FRUIT_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def _get_json(self, path: str) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(path)
        except httpx.HTTPError as e:
            logger.error(f"Fruit API request {path} failed: {e}")
            raise FruitLookupError(
                "Please check your internet connection and try again.",
                details={"path": path},
            ) from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.error(f"Fruit API error {response.status_code}: {response.text[:200]}")
            raise FruitLookupError(
                f"Fruit API returned {response.status_code}",
                details={"path": path, "status_code": response.status_code},
            )
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Fruit API returned a non-JSON body for {path}: {response.text[:200]}")
            raise FruitLookupError(
                "Fruit API returned an unreadable response", details={"path": path}
            ) from e

    async def get_fruit(self, name: str) -> Fruit:
        query = name.strip().lower()
        path = f"/api/fruit/{query}"
        data = await self._get_json(path)
        if data is None:
            raise FruitNotFoundError(name)
        if not isinstance(data, dict):
            raise FruitLookupError("Fruit API returned an unexpected payload", details={"path": path})
        return Fruit.from_dict(data)

    async def list_fruits(self) -> List[Fruit]:
        path = "/api/fruit/all"
        data = await self._get_json(path)
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise FruitLookupError("Fruit API returned an unexpected payload", details={"path": path})
        return [Fruit.from_dict(item) for item in data]


class LocalizedFruitLookup:
    """Fruit lookups whose input and output names follow the clinician's language."""

    def __init__(self, client: FruitLookupClient, translations: TranslationCache):
        self.client = client
        self.translations = translations

    async def search(self, name: str, language: str = "en") -> Fruit:
        query = name
        if language != "en":
            query = await self.translations.localize(name, "en", source_lang=language)
            logger.info(f"Fruit query '{name}' ({language}) looked up as '{query}'")

        fruit = await self.client.get_fruit(query)
        if language == "en":
            return fruit
        localized = await self.translations.localize(fruit.name, language, source_lang="en")
        return replace(fruit, name=localized)

    async def list_all(self, language: str = "en") -> List[Fruit]:
        fruits = await self.client.list_fruits()
        if language == "en" or not fruits:
            return fruits
        names = await self.translations.batch_translate(
            [f.name for f in fruits], language, source_lang="en"
        )
        return [replace(f, name=n) for f, n in zip(fruits, names)]
