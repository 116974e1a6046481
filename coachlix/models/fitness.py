"""Fitness domain data models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class UserProfile:
    """User profile data used to personalize plans and metrics."""

    user_id: str
    name: str
    weight: float | None = None  # kg
    height: float | None = None  # cm
    age: int | None = None
    gender: str | None = None
    activity_level: str = "moderately active"
    fitness_goal: str = "Maintenance"
    experience: str = "Beginner"


@dataclass
class ExerciseSet:
    """One prescribed set of an exercise."""

    reps: int | None = None
    weight: str | None = None
    duration: int | None = None  # seconds


@dataclass
class Exercise:
    """An exercise within a workout."""

    name: str
    target_muscle: str | None = None
    equipment: str | None = None
    sets: list[ExerciseSet] = field(default_factory=list)
    default_sets: int | None = None
    default_reps: int | None = None
    rest_time: int | None = None  # seconds
    instructions: str | None = None


@dataclass
class Workout:
    """A single workout session."""

    name: str
    type: str
    estimated_duration: int | None = None  # minutes
    exercises: list[Exercise] = field(default_factory=list)
    notes: str | None = None


@dataclass
class WorkoutDay:
    """One day of a workout week, Monday first."""

    workouts: list[Workout] = field(default_factory=list)
    is_rest_day: bool = False
    notes: str | None = None


@dataclass
class WorkoutWeek:
    """A week of workout days."""

    days: list[WorkoutDay] = field(default_factory=list)


@dataclass
class WorkoutPlan:
    """A user's workout plan."""

    user_id: str
    name: str
    goal: str
    difficulty: str
    description: str = ""
    duration_weeks: int = 4
    workout_frequency: int = 3
    weeks: list[WorkoutWeek] = field(default_factory=list)
    target_muscle_groups: list[str] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    current_week: int = 1
    completion_rate: float = 0.0
    total_workouts: int = 0
    is_active: bool = True
    created_by: str = "user"
    start_date: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class MealItem:
    """A food item within a meal."""

    name: str
    quantity: str
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fats: int = 0
    unit: str = ""
    notes: str | None = None


@dataclass
class Meal:
    """A meal with its macro totals."""

    type: str  # Breakfast, Lunch, Dinner, Snacks
    items: list[MealItem] = field(default_factory=list)
    total_calories: int = 0
    total_protein: int = 0
    total_carbs: int = 0
    total_fats: int = 0
    instructions: str | None = None


@dataclass
class DietDay:
    """One day of a diet plan."""

    day_number: int
    meals: list[Meal] = field(default_factory=list)
    water_intake: float = 2.5  # liters
    notes: str | None = None


@dataclass
class DietPlan:
    """A user's diet plan with daily macro targets."""

    user_id: str
    name: str
    goal: str
    target_calories: int
    target_protein: int
    target_carbs: int
    target_fats: int
    description: str = ""
    duration_days: int = 7
    days: list[DietDay] = field(default_factory=list)
    current_day: int = 1
    difficulty: str = "Beginner"
    tags: list[str] = field(default_factory=list)
    is_active: bool = True
    created_by: str = "user"


@dataclass
class NutritionInfo:
    """Nutrition facts for a food."""

    calories: float | None
    protein: float | None
    carbs: float | None
    fat: float | None
    fiber: float = 0
    per: str = "per 100g"


@dataclass
class RecentActivity:
    """An entry in a user's activity feed."""

    type: str  # workout, diet
    title: str
    description: str
    date: datetime = field(default_factory=lambda: datetime.now(UTC))
