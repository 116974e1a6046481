"""Fitness data service interface and implementations."""

from typing import Protocol

from coachlix.models.fitness import (
    DietPlan,
    Exercise,
    ExerciseSet,
    RecentActivity,
    UserProfile,
    Workout,
    WorkoutDay,
    WorkoutPlan,
    WorkoutWeek,
)
from coachlix.utils.logging import get_logger

logger = get_logger(__name__)


class FitnessDataService(Protocol):
    """Interface for user profile, workout plan and diet plan storage."""

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        """Get a user's profile.

        Args:
            user_id: The user's unique identifier

        Returns:
            The profile, or None if the user has none
        """
        ...

    async def get_active_workout_plans(self, user_id: str, limit: int = 5) -> list[WorkoutPlan]:
        """Get the user's active workout plans, most recently started first."""
        ...

    async def save_workout_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        """Create or replace the user's workout plan with the same name."""
        ...

    async def get_active_diet_plan(self, user_id: str) -> DietPlan | None:
        """Get the user's active diet plan."""
        ...

    async def save_diet_plan(self, plan: DietPlan) -> DietPlan:
        """Store a new diet plan; it becomes the user's only active diet plan."""
        ...

    async def log_activity(self, user_id: str, activity: RecentActivity) -> None:
        """Append an entry to the user's activity feed."""
        ...


class InMemoryFitnessDataService:
    """In-memory fitness data service

    Uses mock profile and plan data stored in memory.
    """

    def __init__(self):
        """Initialize with mock user data."""
        self.profiles: dict[str, UserProfile] = {p.user_id: p for p in self._create_mock_profiles()}
        self.workout_plans: list[WorkoutPlan] = self._create_mock_workout_plans()
        self.diet_plans: list[DietPlan] = []
        self.activities: dict[str, list[RecentActivity]] = {}

    async def get_user_profile(self, user_id: str) -> UserProfile | None:
        """Get a user's profile."""
        return self.profiles.get(user_id)

    async def get_active_workout_plans(self, user_id: str, limit: int = 5) -> list[WorkoutPlan]:
        """Get the user's active workout plans."""
        plans = [p for p in self.workout_plans if p.user_id == user_id and p.is_active]
        plans.sort(key=lambda p: p.start_date, reverse=True)
        return plans[:limit]

    async def save_workout_plan(self, plan: WorkoutPlan) -> WorkoutPlan:
        """Upsert a workout plan keyed by user and plan name."""
        self.workout_plans = [
            p for p in self.workout_plans if not (p.user_id == plan.user_id and p.name == plan.name)
        ]
        self.workout_plans.append(plan)
        logger.debug(f"Saved workout plan '{plan.name}' for user {plan.user_id}")
        return plan

    async def get_active_diet_plan(self, user_id: str) -> DietPlan | None:
        """Get the user's active diet plan."""
        for plan in reversed(self.diet_plans):
            if plan.user_id == user_id and plan.is_active:
                return plan
        return None

    async def save_diet_plan(self, plan: DietPlan) -> DietPlan:
        """Store a diet plan and deactivate the user's previous ones."""
        if plan.is_active:
            for existing in self.diet_plans:
                if existing.user_id == plan.user_id:
                    existing.is_active = False
        self.diet_plans.append(plan)
        logger.debug(f"Saved diet plan '{plan.name}' for user {plan.user_id}")
        return plan

    async def log_activity(self, user_id: str, activity: RecentActivity) -> None:
        """Append an activity for a known user; unknown users are ignored."""
        if user_id not in self.profiles:
            return
        self.activities.setdefault(user_id, []).append(activity)

    def _create_mock_profiles(self) -> list[UserProfile]:
        """Create mock profile data for testing."""
        return [
            UserProfile(
                user_id="u1",
                name="Alex Rivera",
                weight=78.0,
                height=180.0,
                age=29,
                gender="male",
                activity_level="moderately active",
                fitness_goal="Muscle Gain",
                experience="Intermediate",
            ),
            UserProfile(
                user_id="u2",
                name="Priya Nair",
                weight=64.0,
                height=165.0,
                age=34,
                gender="female",
                activity_level="lightly active",
                fitness_goal="Weight Loss",
                experience="Beginner",
            ),
            # Incomplete profile, used to exercise the missing-data paths
            UserProfile(user_id="u3", name="Sam Lee"),
        ]

    def _create_mock_workout_plans(self) -> list[WorkoutPlan]:
        """Create mock workout plan data for testing."""
        push = Workout(
            name="Push Day",
            type="strength",
            estimated_duration=60,
            exercises=[
                Exercise(
                    name="Bench Press",
                    target_muscle="chest",
                    equipment="barbell",
                    sets=[ExerciseSet(reps=8, weight="70kg") for _ in range(4)],
                    rest_time=120,
                ),
                Exercise(
                    name="Overhead Press",
                    target_muscle="shoulders",
                    equipment="barbell",
                    default_sets=3,
                    default_reps=10,
                    rest_time=90,
                ),
            ],
        )
        pull = Workout(
            name="Pull Day",
            type="strength",
            estimated_duration=55,
            exercises=[
                Exercise(name="Deadlift", target_muscle="back", equipment="barbell", default_sets=3, default_reps=5),
                Exercise(name="Pull-up", target_muscle="lats", default_sets=3, default_reps=8),
            ],
        )
        legs = Workout(
            name="Leg Day",
            type="strength",
            estimated_duration=65,
            exercises=[
                Exercise(
                    name="Back Squat",
                    target_muscle="quads",
                    equipment="barbell",
                    default_sets=4,
                    default_reps=6,
                    instructions="Keep the chest up and drive through the heels.",
                ),
                Exercise(name="Plank", target_muscle="core", sets=[ExerciseSet(duration=60) for _ in range(3)]),
            ],
        )
        rest = WorkoutDay(is_rest_day=True, notes="Light walking or mobility work.")
        week = WorkoutWeek(
            days=[
                WorkoutDay(workouts=[push]),
                WorkoutDay(workouts=[pull]),
                rest,
                WorkoutDay(workouts=[legs]),
                WorkoutDay(workouts=[push]),
                rest,
                rest,
            ]
        )

        return [
            WorkoutPlan(
                user_id="u1",
                name="Push Pull Legs",
                goal="Muscle Gain",
                difficulty="Intermediate",
                description="Three-way split focused on hypertrophy",
                duration_weeks=8,
                workout_frequency=4,
                weeks=[week],
                target_muscle_groups=["chest", "shoulders", "back", "lats", "quads", "core"],
                equipment=["barbell"],
                current_week=1,
                completion_rate=25.0,
                total_workouts=8,
            )
        ]


fitness_data_service = InMemoryFitnessDataService()
