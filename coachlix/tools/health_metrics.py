"""Health metrics calculation tool."""

from pydantic import Field

from coachlix.services.fitness import FitnessDataService
from coachlix.services.health import compute_health_metrics
from coachlix.tools.base import ToolDefinition, UserScopedInput


class HealthMetricsInput(UserScopedInput):
    """Input schema for the health metrics tool; given values override the profile."""

    weight: float | None = Field(default=None, gt=0, description="Weight in kg")
    height: float | None = Field(default=None, gt=0, description="Height in cm")
    age: int | None = Field(default=None, gt=0, lt=130)
    gender: str | None = None
    activity_level: str | None = Field(
        default=None,
        description="sedentary, lightly active, moderately active, very active or extra active",
    )
    goal: str | None = None


def create_health_metrics_tool(fitness_service: FitnessDataService) -> ToolDefinition:
    async def health_metrics_handler(params: HealthMetricsInput) -> str:
        user = await fitness_service.get_user_profile(params.user_id)
        if not user:
            return "Error: User profile not found. Please complete your profile first."

        weight = params.weight or user.weight
        height = params.height or user.height
        age = params.age or user.age
        gender = params.gender or user.gender
        activity = params.activity_level or user.activity_level or "moderately active"
        goal = params.goal or user.fitness_goal or "Maintenance"

        if not weight or not height or not age:
            return (
                "Error: weight (kg), height (cm), and age are required for calculations. "
                "Please update your profile with this information."
            )
        if not gender:
            return (
                "Error: gender is required for accurate BMR calculations. "
                "Please update your profile with your gender information."
            )

        metrics = compute_health_metrics(weight, height, age, gender, activity, goal)
        macros = metrics.macros
        return (
            "Health Metrics for User:\n"
            f"• BMI: {metrics.bmi:.1f} ({metrics.bmi_category})\n"
            f"• BMR: {round(metrics.bmr)} kcal/day\n"
            f"• Maintenance Calories: {metrics.maintenance_calories} kcal/day\n"
            f"• Target Calories: {metrics.target_calories} kcal/day{metrics.calorie_adjustment}\n"
            f"• Macro Targets: Protein {macros.protein}g, Carbs {macros.carbs}g, Fat {macros.fats}g"
        )

    return ToolDefinition(
        name="calculate_health_metrics",
        description=(
            "Calculate BMI, BMR, daily calories and macro targets. "
            "Input: userId (required); weight, height, age, gender, activityLevel and goal override the profile."
        ),
        input_schema_class=HealthMetricsInput,
        handler=health_metrics_handler,
    )
