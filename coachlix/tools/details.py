"""Detailed diet and workout plan lookup tool."""

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any, Literal

from pydantic import Field

from coachlix.models.fitness import DietDay, DietPlan, Meal, WorkoutDay, WorkoutPlan
from coachlix.services.fitness import FitnessDataService
from coachlix.tools.base import ToolDefinition, UserScopedInput
from coachlix.tools.workout import current_week, day_name
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

MAX_DIET_DAYS_SHOWN = 7


class FetchDetailsInput(UserScopedInput):
    """Input schema for the fetch details tool."""

    type: Literal["diet", "workout"] = Field(..., description="Which plan to read")
    detail: Literal["today", "full", "specific_day"] = Field(
        default="today", description="'today', the 'full' plan, or a 'specific_day'"
    )
    day_number: int | None = Field(default=None, ge=1, description="1-based day, used with 'specific_day'")


def meal_totals(meals: list[Meal]) -> dict[str, int]:
    """Sum macro totals over a day's meals."""
    totals = {"calories": 0, "protein": 0, "carbs": 0, "fats": 0}
    for meal in meals:
        totals["calories"] += meal.total_calories
        totals["protein"] += meal.total_protein
        totals["carbs"] += meal.total_carbs
        totals["fats"] += meal.total_fats
    return totals


def select_days(days: list[Any], detail: str, day_number: int | None, today_index: int) -> list[tuple[int, Any]]:
    """Pick the days to show, keeping each day's index in the plan."""
    if detail == "full":
        return list(enumerate(days))
    if detail == "specific_day":
        if day_number and 0 < day_number <= len(days):
            return [(day_number - 1, days[day_number - 1])]
        return []
    if 0 <= today_index < len(days):
        return [(today_index, days[today_index])]
    return []


def format_diet_day(plan: DietPlan, day: DietDay) -> str:
    result = f"\nDay {day.day_number}:\n"
    if not day.meals:
        return result + "  No meals planned for this day yet.\n"

    for meal in day.meals:
        result += f"\n{meal.type} ({meal.total_calories} cal):\n"
        for item in meal.items:
            result += f"  • {item.name} - {item.quantity}{item.unit}\n"
            result += f"    {item.calories} cal | P: {item.protein}g | C: {item.carbs}g | F: {item.fats}g\n"
            if item.notes:
                result += f"    Note: {item.notes}\n"
        if meal.instructions:
            result += f"  Instructions: {meal.instructions}\n"

    totals = meal_totals(day.meals)
    result += f"\nDay {day.day_number} Totals:\n"
    result += f"  Calories: {totals['calories']}/{plan.target_calories} kcal\n"
    result += f"  Protein: {totals['protein']}/{plan.target_protein}g\n"
    result += f"  Carbs: {totals['carbs']}/{plan.target_carbs}g\n"
    result += f"  Fats: {totals['fats']}/{plan.target_fats}g\n"
    return result


def format_workout_day(index: int, day: WorkoutDay) -> str:
    name = day_name(index)
    if day.is_rest_day:
        result = f"\n{name}: Rest Day\n"
        if day.notes:
            result += f"  Note: {day.notes}\n"
        return result
    if not day.workouts:
        return f"\n{name}: Nothing scheduled\n"

    result = f"\n{name}: Workout Day\n"
    for workout in day.workouts:
        result += f"\n  Workout: {workout.name} ({workout.type})\n"
        result += f"  Duration: {workout.estimated_duration or 'N/A'} minutes\n"
        if workout.exercises:
            result += "  Exercises:\n"
        for number, exercise in enumerate(workout.exercises, start=1):
            result += f"\n  {number}. {exercise.name}\n"
            result += f"     Target: {exercise.target_muscle or 'N/A'}\n"
            if exercise.sets:
                described = []
                for s in exercise.sets:
                    text = f"{s.reps or 'N/A'} reps"
                    if s.weight:
                        text += f" @ {s.weight}"
                    if s.duration:
                        text += f" for {s.duration}s"
                    described.append(text)
                result += f"     Sets: {', '.join(described)}\n"
            elif exercise.default_sets:
                result += f"     Sets: {exercise.default_sets} x {exercise.default_reps or 'N/A'} reps\n"
            if exercise.rest_time:
                result += f"     Rest: {exercise.rest_time}s between sets\n"
            if exercise.instructions:
                result += f"     Instructions: {exercise.instructions}\n"
        if workout.notes:
            result += f"  Notes: {workout.notes}\n"
    return result


async def fetch_diet_details(
    fitness_service: FitnessDataService, params: FetchDetailsInput
) -> str:
    plan = await fitness_service.get_active_diet_plan(params.user_id)
    if not plan:
        return "No active diet plan found. Would you like me to create one for you?"

    result = f'Diet Plan: "{plan.name}"\n'
    result += f"Goal: {plan.goal}\n"
    result += (
        f"Daily Targets: {plan.target_calories} kcal, {plan.target_protein}g protein, "
        f"{plan.target_carbs}g carbs, {plan.target_fats}g fats\n"
    )

    days = plan.days[:MAX_DIET_DAYS_SHOWN] if params.detail == "full" else plan.days
    selected = select_days(days, params.detail, params.day_number, plan.current_day - 1)
    if not selected and params.detail == "today" and plan.days:
        selected = [(0, plan.days[0])]
    if not selected:
        return "No meal details found for the requested day."

    for _, day in selected:
        result += format_diet_day(plan, day)
    return result


async def fetch_workout_details(
    fitness_service: FitnessDataService, params: FetchDetailsInput, today: date
) -> str:
    plans = await fitness_service.get_active_workout_plans(params.user_id, limit=1)
    if not plans:
        return "No active workout plan found. Would you like me to create one for you?"
    plan: WorkoutPlan = plans[0]

    week = current_week(plan)
    if not week or not week.days:
        return "No workout details found for the current week."

    result = f'Workout Plan: "{plan.name}"\n'
    result += f"Goal: {plan.goal}\n"
    result += f"Difficulty: {plan.difficulty}\n"
    result += f"Frequency: {plan.workout_frequency}x per week\n"

    selected = select_days(week.days, params.detail, params.day_number, today.weekday())
    if not selected:
        return "No workout details found for the requested day."

    for index, day in selected:
        result += format_workout_day(index, day)
    return result


def create_fetch_details_tool(
    fitness_service: FitnessDataService, clock: Callable[[], date] | None = None
) -> ToolDefinition:
    today = clock or (lambda: datetime.now(UTC).date())

    async def fetch_details_handler(params: FetchDetailsInput) -> str:
        logger.info(f"Fetching {params.type} details ({params.detail}) for user {params.user_id}")
        if params.type == "diet":
            return await fetch_diet_details(fitness_service, params)
        return await fetch_workout_details(fitness_service, params, today())

    return ToolDefinition(
        name="fetch_details",
        description=(
            "Fetch detailed diet or workout information. "
            "Input: userId (required), type ('diet' or 'workout', required), "
            "detail ('today', 'full' or 'specific_day'), dayNumber (with 'specific_day')."
        ),
        input_schema_class=FetchDetailsInput,
        handler=fetch_details_handler,
    )
