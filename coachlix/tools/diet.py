"""Diet plan creation tool."""

from dataclasses import replace
from datetime import UTC, datetime

from pydantic import Field

from coachlix.models.fitness import DietDay, DietPlan, Meal, MealItem, RecentActivity
from coachlix.services.fitness import FitnessDataService
from coachlix.services.health import calculate_bmr, goal_adjusted_calories, macro_targets
from coachlix.tools.base import ToolDefinition, UserScopedInput
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WEIGHT_KG = 70
DEFAULT_HEIGHT_CM = 170
DEFAULT_AGE = 25
PLAN_ACTIVITY_MULTIPLIER = 1.55  # moderately active

# Share of the day's calories and macros per meal
MEAL_DISTRIBUTION: list[tuple[str, float]] = [
    ("Breakfast", 0.30),
    ("Lunch", 0.35),
    ("Dinner", 0.25),
    ("Snacks", 0.10),
]

FOOD_OPTIONS: dict[str, list[MealItem]] = {
    "Breakfast": [
        MealItem("Oatmeal with berries", "1 cup", 300, 10, 55, 5),
        MealItem("Greek yogurt with honey", "200g", 200, 20, 25, 3),
        MealItem("Scrambled eggs with toast", "2 eggs + 2 slices", 350, 25, 30, 15),
        MealItem("Protein smoothie", "1 serving", 250, 30, 20, 5),
        MealItem("Whole grain pancakes", "3 pancakes", 400, 15, 65, 8),
    ],
    "Lunch": [
        MealItem("Grilled chicken salad", "1 large bowl", 450, 40, 30, 18),
        MealItem("Quinoa bowl with vegetables", "1 bowl", 400, 15, 60, 12),
        MealItem("Tuna sandwich", "1 sandwich", 380, 35, 40, 10),
        MealItem("Brown rice with grilled fish", "1 plate", 500, 45, 50, 15),
        MealItem("Veggie wrap with hummus", "1 wrap", 350, 12, 55, 10),
    ],
    "Dinner": [
        MealItem("Baked salmon with sweet potato", "1 fillet + 1 medium potato", 550, 45, 40, 22),
        MealItem("Chicken stir-fry with vegetables", "1 plate", 450, 40, 35, 18),
        MealItem("Lean beef with broccoli", "6oz beef + 2 cups broccoli", 480, 50, 25, 20),
        MealItem("Turkey meatballs with pasta", "1 serving", 520, 38, 55, 16),
        MealItem("Tofu curry with rice", "1 bowl", 420, 20, 60, 12),
    ],
    "Snacks": [
        MealItem("Apple with almond butter", "1 apple + 2 tbsp", 180, 5, 20, 9),
        MealItem("Protein bar", "1 bar", 200, 20, 25, 5),
        MealItem("Mixed nuts", "1 oz", 160, 6, 8, 14),
        MealItem("Cottage cheese with fruit", "1 cup", 150, 15, 18, 3),
        MealItem("Rice cakes with peanut butter", "2 cakes + 1 tbsp", 190, 8, 22, 8),
    ],
}


class CreateDietPlanInput(UserScopedInput):
    """Input schema for the create diet plan tool."""

    plan_name: str | None = None
    goal: str | None = Field(default=None, description="e.g. Weight Loss, Muscle Gain, Maintenance")
    target_calories: int | None = Field(default=None, ge=800, le=6000)
    duration: int = Field(default=7, ge=1, le=30, description="Duration in days")
    dietary_restrictions: list[str] = Field(default_factory=list)
    difficulty: str | None = None
    tags: list[str] | None = None


def pick_food_items(meal_type: str, day_number: int) -> list[MealItem]:
    """Rotate through the meal type's options so consecutive days differ."""
    options = FOOD_OPTIONS.get(meal_type, FOOD_OPTIONS["Snacks"])
    count = 1 if meal_type == "Snacks" or day_number % 2 else 2
    return [
        replace(options[(day_number + offset) % len(options)])
        for offset in range(count)
    ]


def generate_meals_for_day(day_number: int, calories: int, protein: int, carbs: int, fats: int) -> list[Meal]:
    """Build a day's meals, splitting macro totals by the meal distribution."""
    return [
        Meal(
            type=meal_type,
            items=pick_food_items(meal_type, day_number),
            total_calories=round(calories * ratio),
            total_protein=round(protein * ratio),
            total_carbs=round(carbs * ratio),
            total_fats=round(fats * ratio),
        )
        for meal_type, ratio in MEAL_DISTRIBUTION
    ]


def create_create_diet_plan_tool(fitness_service: FitnessDataService) -> ToolDefinition:
    async def create_diet_plan_handler(params: CreateDietPlanInput) -> str:
        user = await fitness_service.get_user_profile(params.user_id)
        if not user:
            return "Error: User profile not found. Please complete your profile first."

        goal = params.goal or user.fitness_goal or "Maintenance"
        weight = user.weight or DEFAULT_WEIGHT_KG
        height = user.height or DEFAULT_HEIGHT_CM
        age = user.age or DEFAULT_AGE

        calories = params.target_calories
        if not calories:
            bmr = calculate_bmr(weight, height, age, user.gender or "male")
            calories, _ = goal_adjusted_calories(round(bmr * PLAN_ACTIVITY_MULTIPLIER), goal)
            logger.debug(f"Calculated target calories for user {params.user_id}: {calories}")

        macros = macro_targets(weight, calories, goal)
        days = [
            DietDay(
                day_number=day_number,
                meals=generate_meals_for_day(day_number, calories, macros.protein, macros.carbs, macros.fats),
                notes=f"Day {day_number} - Stay consistent with your nutrition!",
            )
            for day_number in range(1, params.duration + 1)
        ]

        plan = DietPlan(
            user_id=params.user_id,
            name=params.plan_name or f"{goal} Plan - {datetime.now(UTC):%Y-%m-%d}",
            description=f"Personalized {goal} diet plan with {calories} daily calories",
            goal=goal,
            target_calories=calories,
            target_protein=macros.protein,
            target_carbs=macros.carbs,
            target_fats=macros.fats,
            duration_days=params.duration,
            days=days,
            difficulty=params.difficulty or user.experience or "Beginner",
            tags=params.tags or [goal, f"{calories}cal", *params.dietary_restrictions],
            created_by="ai",
        )
        await fitness_service.save_diet_plan(plan)
        await fitness_service.log_activity(
            params.user_id,
            RecentActivity(
                type="diet",
                title=f"Created diet plan: {plan.name}",
                description=f"New {goal} plan with {calories} daily calories",
            ),
        )
        logger.info(f"Created diet plan '{plan.name}' for user {params.user_id}")

        return (
            f'Successfully created your diet plan "{plan.name}"!\n\n'
            f"Plan Details:\n"
            f"• Goal: {goal}\n"
            f"• Duration: {params.duration} days\n"
            f"• Daily Targets:\n"
            f"  - Calories: {calories} kcal\n"
            f"  - Protein: {macros.protein}g\n"
            f"  - Carbs: {macros.carbs}g\n"
            f"  - Fats: {macros.fats}g\n\n"
            f"Your meal plan includes {len(days)} days with {len(MEAL_DISTRIBUTION)} meals each."
        )

    return ToolDefinition(
        name="create_diet_plan",
        description=(
            "Create a new diet plan with daily meals when the user wants one. "
            "Input: userId (required), planName, goal, targetCalories, duration (days), dietaryRestrictions. "
            "Calorie and macro targets are calculated from the user's profile when not given."
        ),
        input_schema_class=CreateDietPlanInput,
        handler=create_diet_plan_handler,
    )
