"""Workout plan retrieval and update tools."""

from typing import Literal

from pydantic import Field

from coachlix.models.fitness import Exercise, RecentActivity, Workout, WorkoutDay, WorkoutPlan, WorkoutWeek
from coachlix.services.fitness import FitnessDataService
from coachlix.tools.base import ToolDefinition, ToolInput, UserScopedInput
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def day_name(index: int) -> str:
    return DAY_NAMES[index] if 0 <= index < len(DAY_NAMES) else f"Day {index + 1}"


def current_week(plan: WorkoutPlan) -> WorkoutWeek | None:
    """The plan's current week, falling back to its first week."""
    if not plan.weeks:
        return None
    index = plan.current_week - 1
    return plan.weeks[index] if 0 <= index < len(plan.weeks) else plan.weeks[0]


def format_day_summary(day: WorkoutDay) -> str:
    if day.is_rest_day:
        return "Rest day"
    if not day.workouts:
        return "Nothing scheduled"
    return ", ".join(f"{w.name} ({w.estimated_duration or 'N/A'} min)" for w in day.workouts)


class GetWorkoutPlanInput(UserScopedInput):
    """Input schema for the get workout plan tool."""


class WorkoutExerciseInput(ToolInput):
    """An exercise proposed by the model for a new plan."""

    name: str = Field(..., min_length=1)
    target_muscle: str | None = None
    target_muscles: list[str] = Field(default_factory=list)
    equipment: str | None = None
    sets: int | None = Field(default=None, ge=1)
    reps: int | None = Field(default=None, ge=1)


class UpdateWorkoutPlanInput(UserScopedInput):
    """Input schema for the update workout plan tool."""

    action: Literal["get", "retrieve", "create", "update"] = Field(
        default="create", description="'get' lists active plans; 'create' or 'update' upserts by plan name"
    )
    plan_name: str | None = Field(default=None, description="Name of the plan to create or update")
    exercises: list[WorkoutExerciseInput] = Field(default_factory=list)
    duration: int | None = Field(default=None, ge=1, le=52, description="Duration in weeks")
    difficulty: str | None = Field(default=None, description="Beginner, Intermediate or Advanced")
    goal: str | None = None
    notes: str | None = None


def format_active_plans(plans: list[WorkoutPlan]) -> str:
    """Format a short overview of active workout plans."""
    result = "Your Current Workout Plans:\n"
    for index, plan in enumerate(plans, start=1):
        result += f"\n{index}. {plan.name}"
        result += f"\n   Goal: {plan.goal}"
        result += f"\n   Difficulty: {plan.difficulty}"
        result += f"\n   Progress: Week {plan.current_week} | {plan.completion_rate:g}% complete"
        result += f"\n   Workouts Done: {plan.total_workouts}\n"
    return result


def exercises_to_weeks(exercises: list[WorkoutExerciseInput], experience: str) -> list[WorkoutWeek]:
    """Spread exercises over training days, fewer per day for beginners."""
    per_day = 3 if experience.lower() == "beginner" else 5
    days = [
        WorkoutDay(
            workouts=[
                _to_workout(exercises[i : i + per_day], f"Session {i // per_day + 1}"),
            ]
        )
        for i in range(0, len(exercises), per_day)
    ]
    return [WorkoutWeek(days=days)] if days else []


def _to_workout(exercises: list[WorkoutExerciseInput], name: str) -> Workout:
    return Workout(
        name=name,
        type="strength",
        exercises=[
            Exercise(
                name=ex.name,
                target_muscle=ex.target_muscle,
                equipment=ex.equipment,
                default_sets=ex.sets,
                default_reps=ex.reps,
            )
            for ex in exercises
        ],
    )


def target_muscles(exercises: list[WorkoutExerciseInput]) -> list[str]:
    muscles: dict[str, None] = {}
    for ex in exercises:
        if ex.target_muscle:
            muscles[ex.target_muscle] = None
        for muscle in ex.target_muscles:
            muscles[muscle] = None
    return list(muscles)


def equipment_used(exercises: list[WorkoutExerciseInput]) -> list[str]:
    return list(dict.fromkeys(ex.equipment for ex in exercises if ex.equipment))


def create_get_workout_plan_tool(fitness_service: FitnessDataService) -> ToolDefinition:
    async def get_workout_plan_handler(params: GetWorkoutPlanInput) -> str:
        plans = await fitness_service.get_active_workout_plans(params.user_id)
        if not plans:
            return "No active workout plans found for this user."

        result = format_active_plans(plans)
        week = current_week(plans[0])
        if week and week.days:
            result += f"\nThis Week's Schedule ({plans[0].name}, week {plans[0].current_week}):\n"
            for index, day in enumerate(week.days):
                result += f"• {day_name(index)}: {format_day_summary(day)}\n"

        return result.strip()

    return ToolDefinition(
        name="get_workout_plan",
        description=(
            "Retrieve the user's active workout plans and this week's schedule. "
            "Use whenever the user asks about their workout plan, schedule, or what to train today. "
            "Input: userId (required)."
        ),
        input_schema_class=GetWorkoutPlanInput,
        handler=get_workout_plan_handler,
    )


def create_update_workout_plan_tool(fitness_service: FitnessDataService) -> ToolDefinition:
    async def update_workout_plan_handler(params: UpdateWorkoutPlanInput) -> str:
        if params.action in ("get", "retrieve"):
            plans = await fitness_service.get_active_workout_plans(params.user_id)
            if not plans:
                return "No active workout plans found for this user."
            return format_active_plans(plans).strip()

        if not params.plan_name:
            return "Error: planName is required to create/update workout plan."

        user = await fitness_service.get_user_profile(params.user_id)
        goal = params.goal or (user.fitness_goal if user else None) or "General Fitness"
        experience = params.difficulty or (user.experience if user else None) or "Beginner"
        duration = params.duration or 4

        plan = WorkoutPlan(
            user_id=params.user_id,
            name=params.plan_name,
            goal=goal,
            difficulty=experience,
            description=params.notes or f"Personalized {goal} workout plan",
            duration_weeks=duration,
            workout_frequency=3,
            weeks=exercises_to_weeks(params.exercises, experience),
            target_muscle_groups=target_muscles(params.exercises),
            equipment=equipment_used(params.exercises),
            created_by="ai",
        )
        await fitness_service.save_workout_plan(plan)
        logger.info(f"Saved workout plan '{plan.name}' for user {params.user_id}")

        if user:
            await fitness_service.log_activity(
                params.user_id,
                RecentActivity(
                    type="workout",
                    title=f"Created workout plan: {plan.name}",
                    description=f"New {goal} plan with {experience} difficulty",
                ),
            )

        exercise_count: int | str = len(params.exercises) or "various"
        return (
            f'Successfully created/updated workout plan "{plan.name}"!\n\n'
            f"Plan Details:\n"
            f"• Goal: {goal}\n"
            f"• Difficulty: {experience}\n"
            f"• Duration: {duration} weeks\n"
            f"• Frequency: 3x per week\n\n"
            f"Your plan includes {exercise_count} exercises tailored to your experience level."
        )

    return ToolDefinition(
        name="update_workout_plan",
        description=(
            "Create or modify workout plans, or list active ones with action 'get'. "
            "Input: userId (required), action, planName, exercises, duration (weeks), difficulty, goal."
        ),
        input_schema_class=UpdateWorkoutPlanInput,
        handler=update_workout_plan_handler,
    )
