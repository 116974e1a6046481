"""Food nutrition lookup backed by USDA FoodData Central and a built-in table."""

import os
from typing import Any, ClassVar, Protocol

import httpx

from coachlix.models.fitness import NutritionInfo
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

USDA_SEARCH_URL = "https://api.nal.usda.gov/fdc/v1/foods/search"

# USDA nutrient numbers
_CALORIES = "208"
_PROTEIN = "203"
_CARBS = "205"
_FAT = "204"
_FIBER = "291"


class NutritionService(Protocol):
    """Interface for nutrition data sources."""

    async def lookup(self, food_name: str) -> NutritionInfo | None:
        """Look up nutrition facts for a food.

        Args:
            food_name: Free-text food name, e.g. "banana raw"

        Returns:
            Nutrition facts, or None if the food is unknown
        """
        ...


class LocalNutritionTable:
    """Built-in nutrition facts for common foods, per 100g."""

    FOODS: ClassVar[dict[str, NutritionInfo]] = {
        "banana": NutritionInfo(calories=89, protein=1.1, carbs=22.8, fat=0.3, fiber=2.6),
        "apple": NutritionInfo(calories=52, protein=0.3, carbs=13.8, fat=0.2, fiber=2.4),
        "oats": NutritionInfo(calories=389, protein=16.9, carbs=66.3, fat=6.9, fiber=10.6),
        "egg": NutritionInfo(calories=143, protein=12.6, carbs=0.7, fat=9.5, fiber=0),
        "chicken breast": NutritionInfo(calories=165, protein=31.0, carbs=0, fat=3.6, fiber=0),
        "salmon": NutritionInfo(calories=208, protein=20.4, carbs=0, fat=13.4, fiber=0),
        "white rice": NutritionInfo(calories=130, protein=2.7, carbs=28.2, fat=0.3, fiber=0.4),
        "brown rice": NutritionInfo(calories=123, protein=2.7, carbs=25.6, fat=1.0, fiber=1.6),
        "sweet potato": NutritionInfo(calories=86, protein=1.6, carbs=20.1, fat=0.1, fiber=3.0),
        "broccoli": NutritionInfo(calories=34, protein=2.8, carbs=6.6, fat=0.4, fiber=2.6),
        "greek yogurt": NutritionInfo(calories=59, protein=10.2, carbs=3.6, fat=0.4, fiber=0),
        "almonds": NutritionInfo(calories=579, protein=21.2, carbs=21.6, fat=49.9, fiber=12.5),
        "peanut butter": NutritionInfo(calories=588, protein=25.1, carbs=20.0, fat=50.4, fiber=6.0),
        "tofu": NutritionInfo(calories=76, protein=8.1, carbs=1.9, fat=4.8, fiber=0.3),
        "lentils": NutritionInfo(calories=116, protein=9.0, carbs=20.1, fat=0.4, fiber=7.9),
        "paneer": NutritionInfo(calories=265, protein=18.3, carbs=1.2, fat=20.8, fiber=0),
    }

    async def lookup(self, food_name: str) -> NutritionInfo | None:
        """Match the longest known food name contained in the query."""
        query = food_name.lower().strip()
        if query in self.FOODS:
            return self.FOODS[query]

        matches = [name for name in self.FOODS if name in query]
        if not matches:
            return None
        return self.FOODS[max(matches, key=len)]


def _label_value(item: dict[str, Any], key: str) -> float | None:
    return (item.get("labelNutrients") or {}).get(key, {}).get("value")


def nutrition_from_usda_food(item: dict[str, Any]) -> NutritionInfo | None:
    """Extract nutrition facts from one USDA search result.

    Branded foods carry ``labelNutrients`` per serving; other foods fall back
    to ``foodNutrients`` per 100g.
    """
    calories = protein = carbs = fat = fiber = None
    per = None

    if item.get("labelNutrients"):
        calories = _label_value(item, "calories")
        protein = _label_value(item, "protein")
        carbs = _label_value(item, "carbohydrates")
        fat = _label_value(item, "fat")
        fiber = _label_value(item, "fiber")
        if item.get("servingSize") and item.get("servingSizeUnit"):
            per = f"{item['servingSize']}{item['servingSizeUnit']}"
        else:
            per = "per serving"

    if None in (calories, protein, carbs, fat):
        by_number: dict[str, float] = {}
        for nutrient in item.get("foodNutrients") or []:
            number = str(nutrient.get("nutrientNumber") or nutrient.get("nutrientId") or "")
            if number and nutrient.get("value") is not None:
                by_number.setdefault(number, nutrient["value"])

        calories = calories if calories is not None else by_number.get(_CALORIES)
        protein = protein if protein is not None else by_number.get(_PROTEIN)
        carbs = carbs if carbs is not None else by_number.get(_CARBS)
        fat = fat if fat is not None else by_number.get(_FAT)
        fiber = fiber if fiber is not None else by_number.get(_FIBER)
        per = per or "per 100g"

    if calories is None and protein is None and carbs is None and fat is None:
        return None

    return NutritionInfo(calories=calories, protein=protein, carbs=carbs, fat=fat, fiber=fiber or 0, per=per)


class USDANutritionService:
    """Nutrition lookup against USDA FoodData Central.

    Falls back to the built-in table when no API key is configured, the API
    fails, or the search has no usable result.
    """

    def __init__(
        self,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        fallback: NutritionService | None = None,
    ):
        """Initialize nutrition service.

        Args:
            api_key: USDA API key (defaults to USDA_API_KEY env var)
            http_client: HTTP client to reuse; a short-lived one is created per call otherwise
            fallback: Source consulted when USDA has no answer
        """
        key = api_key if api_key is not None else os.getenv("USDA_API_KEY", "")
        self.api_key = key.strip() or None
        self.http_client = http_client
        self.fallback = fallback or LocalNutritionTable()

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    async def _search(self, client: httpx.AsyncClient, query: str) -> NutritionInfo | None:
        response = await client.get(
            USDA_SEARCH_URL,
            params={"api_key": self.api_key, "pageSize": 1, "query": query},
        )
        response.raise_for_status()
        foods = response.json().get("foods") or []
        return nutrition_from_usda_food(foods[0]) if foods else None

    async def fetch_from_usda(self, query: str) -> NutritionInfo | None:
        """Query the USDA search API for the best match."""
        if self.http_client is not None:
            return await self._search(self.http_client, query)
        async with httpx.AsyncClient(timeout=10.0) as client:
            return await self._search(client, query)

    async def lookup(self, food_name: str) -> NutritionInfo | None:
        """Look up a food, preferring USDA data."""
        if self.configured:
            try:
                info = await self.fetch_from_usda(food_name)
                if info:
                    return info
            except httpx.HTTPError as e:
                logger.error(f"USDA API error for '{food_name}': {e}")

        return await self.fallback.lookup(food_name)
