"""Tests for health calculations, nutrition sources and fitness data."""

import httpx
import pytest

from coachlix.models.fitness import RecentActivity
from coachlix.services.health import (
    bmi_category,
    calculate_bmr,
    compute_health_metrics,
    goal_adjusted_calories,
    macro_targets,
)
from coachlix.services.nutrition import (
    USDA_SEARCH_URL,
    LocalNutritionTable,
    USDANutritionService,
    nutrition_from_usda_food,
)


class TestHealthCalculations:
    """Tests for BMI, BMR and calorie targets."""

    def test_bmr_male_and_female(self):
        """Test the Mifflin-St Jeor constants."""
        assert calculate_bmr(78, 180, 29, "male") == pytest.approx(1765)
        assert calculate_bmr(64, 165, 34, "female") == pytest.approx(1340.25)
        assert calculate_bmr(64, 165, 34, None) == pytest.approx(1340.25)

    @pytest.mark.parametrize(
        ("bmi", "category"),
        [(17.0, "Underweight"), (18.5, "Normal weight"), (24.9, "Normal weight"), (25.0, "Overweight"), (31, "Obese")],
    )
    def test_bmi_categories(self, bmi, category):
        """Test the category boundaries."""
        assert bmi_category(bmi) == category

    def test_goal_adjustments(self):
        """Test deficit, surplus and maintenance."""
        assert goal_adjusted_calories(2500, "Weight Loss") == (2000, " (20% deficit for weight loss)")
        assert goal_adjusted_calories(2000, "lean bulking") == (2300, " (15% surplus for muscle gain)")
        assert goal_adjusted_calories(2200, "Maintenance") == (2200, "")

    def test_macro_targets(self):
        """Test that macros account for the calorie target."""
        macros = macro_targets(80, 2000, "Maintenance")

        assert macros.protein == 128
        assert macros.fats == 67
        assert macros.carbs == round((2000 - 128 * 4 - 67 * 9) / 4)

    def test_unknown_activity_level_uses_default(self):
        """Test that an unknown activity level counts as moderately active."""
        metrics = compute_health_metrics(78, 180, 29, "male", activity_level="couch potato")
        assert metrics.maintenance_calories == round(1765 * 1.55)


class TestLocalNutritionTable:
    """Tests for the built-in nutrition table."""

    @pytest.mark.asyncio
    async def test_exact_and_contained_names(self):
        """Test exact matches and the longest contained food name."""
        table = LocalNutritionTable()

        assert (await table.lookup("Banana")).calories == 89
        assert (await table.lookup("cooked brown rice")).calories == 123

    @pytest.mark.asyncio
    async def test_unknown(self):
        """Test that unknown foods return None."""
        assert await LocalNutritionTable().lookup("unicorn steak") is None


class TestUSDANutrition:
    """Tests for the USDA FoodData Central source."""

    def test_label_nutrients_preferred(self):
        """Test branded foods with per-serving label values."""
        item = {
            "servingSize": 40,
            "servingSizeUnit": "g",
            "labelNutrients": {
                "calories": {"value": 150},
                "protein": {"value": 5},
                "carbohydrates": {"value": 27},
                "fat": {"value": 3},
                "fiber": {"value": 4},
            },
        }

        info = nutrition_from_usda_food(item)

        assert info.calories == 150
        assert info.fiber == 4
        assert info.per == "40g"

    def test_food_nutrients_by_number(self):
        """Test generic foods with per-100g nutrient numbers."""
        item = {
            "foodNutrients": [
                {"nutrientNumber": "208", "value": 52},
                {"nutrientNumber": "203", "value": 0.3},
                {"nutrientNumber": "205", "value": 13.8},
                {"nutrientNumber": "204", "value": 0.2},
            ]
        }

        info = nutrition_from_usda_food(item)

        assert info.calories == 52
        assert info.protein == 0.3
        assert info.fiber == 0
        assert info.per == "per 100g"

    def test_no_nutrients(self):
        """Test that an item without nutrient data yields None."""
        assert nutrition_from_usda_food({"description": "Mystery"}) is None

    @pytest.mark.asyncio
    async def test_search_request(self):
        """Test the search call and result parsing."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            nutrients = [{"nutrientNumber": "208", "value": 61}, {"nutrientNumber": "203", "value": 3.2}]
            return httpx.Response(200, json={"foods": [{"foodNutrients": nutrients}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = USDANutritionService(api_key="test-key", http_client=client)
            info = await service.lookup("kefir")

        assert info.calories == 61
        assert str(seen[0].url).startswith(USDA_SEARCH_URL)
        assert seen[0].url.params["query"] == "kefir"
        assert seen[0].url.params["api_key"] == "test-key"

    @pytest.mark.asyncio
    async def test_api_error_falls_back(self):
        """Test that an HTTP error uses the built-in table."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = USDANutritionService(api_key="test-key", http_client=client)
            info = await service.lookup("salmon")

        assert info.calories == 208

    @pytest.mark.asyncio
    async def test_unconfigured_uses_table(self):
        """Test that no API key means no HTTP call."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("USDA should not be called without a key")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = USDANutritionService(api_key="", http_client=client)
            info = await service.lookup("egg")

        assert not service.configured
        assert info.protein == 12.6


class TestInMemoryFitnessData:
    """Tests for the in-memory fitness data service."""

    @pytest.mark.asyncio
    async def test_mock_profiles(self, fitness_service):
        """Test the seeded users."""
        alex = await fitness_service.get_user_profile("u1")
        assert alex.name == "Alex Rivera"
        assert alex.fitness_goal == "Muscle Gain"
        assert await fitness_service.get_user_profile("missing") is None

    @pytest.mark.asyncio
    async def test_activity_for_unknown_user_ignored(self, fitness_service):
        """Test that activities are only kept for known users."""
        activity = RecentActivity(type="workout", title="t", description="d")

        await fitness_service.log_activity("missing", activity)
        await fitness_service.log_activity("u1", activity)

        assert "missing" not in fitness_service.activities
        assert fitness_service.activities["u1"] == [activity]
