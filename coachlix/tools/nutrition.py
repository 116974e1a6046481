"""Nutrition lookup tool."""

from pydantic import AliasChoices, Field

from coachlix.models.fitness import NutritionInfo
from coachlix.services.fitness import FitnessDataService
from coachlix.services.nutrition import NutritionService
from coachlix.tools.base import ToolDefinition, ToolInput
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


class NutritionLookupInput(ToolInput):
    """Input schema for the nutrition lookup tool."""

    food_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("foodName", "food_name", "food"),
        description="Food to look up, as specific as possible (e.g. 'banana raw')",
    )
    user_id: str | None = Field(default=None, description="Adds context from the user's diet plan when given")


def format_nutrition(food_name: str, info: NutritionInfo) -> str:
    return (
        f"{food_name}:\n"
        f"• Calories: {info.calories}\n"
        f"• Protein: {info.protein}g\n"
        f"• Carbs: {info.carbs}g\n"
        f"• Fat: {info.fat}g\n"
        f"• Fiber: {info.fiber}g\n"
        f"• Per: {info.per}"
    )


async def personalized_context(fitness_service: FitnessDataService, user_id: str, info: NutritionInfo) -> str:
    """Describe how a food fits the user's active diet plan targets."""
    user = await fitness_service.get_user_profile(user_id)
    plan = await fitness_service.get_active_diet_plan(user_id)
    if not user or not plan:
        return ""

    result = "\n\nPersonalized Context:"
    result += f"\n• Your daily calorie target: {plan.target_calories} calories"
    result += f"\n• Your daily protein target: {plan.target_protein}g"
    if info.calories is not None and plan.target_calories:
        result += f"\n• This food provides {info.calories / plan.target_calories * 100:.1f}% of your daily calories"
    if info.protein is not None and plan.target_protein:
        result += f"\n• This food provides {info.protein / plan.target_protein * 100:.1f}% of your daily protein"

    if user.fitness_goal == "Weight Loss" and (info.calories or 0) > 200:
        result += "\n• Weight Loss Tip: Consider portion size for calorie management"
    elif user.fitness_goal == "Muscle Gain" and (info.protein or 0) > 15:
        result += "\n• Muscle Gain Tip: Great protein source for your goals!"
    return result


def create_nutrition_lookup_tool(
    nutrition_service: NutritionService, fitness_service: FitnessDataService
) -> ToolDefinition:
    async def nutrition_lookup_handler(params: NutritionLookupInput) -> str:
        info = await nutrition_service.lookup(params.food_name)
        if not info:
            logger.info(f"No nutrition data found for '{params.food_name}'")
            return (
                f'I couldn\'t find reliable nutrition data for "{params.food_name}" right now.\n'
                'Try a more specific name, e.g. "banana raw" or "oatmeal cooked".'
            )

        result = format_nutrition(params.food_name, info)
        if params.user_id:
            result += await personalized_context(fitness_service, params.user_id, info)
        return result

    return ToolDefinition(
        name="nutrition_lookup",
        description=(
            "Get food nutrition info: calories, protein, carbs, fat and fiber. "
            "Input: foodName (required), userId for personalized context."
        ),
        input_schema_class=NutritionLookupInput,
        handler=nutrition_lookup_handler,
    )
