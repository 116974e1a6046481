"""Body metric and calorie target calculations."""

from dataclasses import dataclass

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    "sedentary": 1.2,
    "lightly active": 1.375,
    "moderately active": 1.55,
    "very active": 1.725,
    "extra active": 1.9,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.55

WEIGHT_LOSS_FACTOR = 0.8  # 20% deficit
MUSCLE_GAIN_FACTOR = 1.15  # 15% surplus


@dataclass
class MacroTargets:
    """Daily macronutrient targets in grams."""

    protein: int
    carbs: int
    fats: int


@dataclass
class HealthMetrics:
    """Computed body metrics and calorie targets."""

    bmi: float
    bmi_category: str
    bmr: float
    maintenance_calories: int
    target_calories: int
    calorie_adjustment: str
    macros: MacroTargets


def is_weight_loss(goal: str | None) -> bool:
    goal = (goal or "").lower()
    return "weight loss" in goal or "cutting" in goal


def is_muscle_gain(goal: str | None) -> bool:
    goal = (goal or "").lower()
    return "muscle gain" in goal or "bulking" in goal


def bmi_category(bmi: float) -> str:
    """Map a BMI value to its standard category."""
    if bmi < 18.5:
        return "Underweight"
    if bmi < 25:
        return "Normal weight"
    if bmi < 30:
        return "Overweight"
    return "Obese"


def calculate_bmr(weight: float, height: float, age: int, gender: str | None) -> float:
    """Basal metabolic rate by the Mifflin-St Jeor equation.

    Args:
        weight: Body weight in kg
        height: Height in cm
        age: Age in years
        gender: ``male`` uses the male constant; anything else the female one
    """
    base = 10 * weight + 6.25 * height - 5 * age
    return base + 5 if (gender or "").lower() == "male" else base - 161


def activity_multiplier(activity_level: str | None) -> float:
    return ACTIVITY_MULTIPLIERS.get((activity_level or "").lower(), DEFAULT_ACTIVITY_MULTIPLIER)


def goal_adjusted_calories(maintenance_calories: int, goal: str | None) -> tuple[int, str]:
    """Apply the goal's calorie deficit or surplus.

    Returns:
        Target calories and a human-readable note on the adjustment
    """
    if is_weight_loss(goal):
        return round(maintenance_calories * WEIGHT_LOSS_FACTOR), " (20% deficit for weight loss)"
    if is_muscle_gain(goal):
        return round(maintenance_calories * MUSCLE_GAIN_FACTOR), " (15% surplus for muscle gain)"
    return maintenance_calories, ""


def macro_targets(weight: float, calories: int, goal: str | None) -> MacroTargets:
    """Split daily calories into protein, fat and carb targets.

    Protein is set per kg of body weight, fat as a share of calories, and
    carbs take the remaining calories.
    """
    if is_muscle_gain(goal):
        protein_per_kg, fat_share = 2.2, 0.25
    elif is_weight_loss(goal):
        protein_per_kg, fat_share = 2.0, 0.25
    else:
        protein_per_kg, fat_share = 1.6, 0.3

    protein = round(weight * protein_per_kg)
    fats = round(calories * fat_share / 9)
    carbs = round((calories - protein * 4 - fats * 9) / 4)
    return MacroTargets(protein=protein, carbs=carbs, fats=fats)


def compute_health_metrics(
    weight: float,
    height: float,
    age: int,
    gender: str | None,
    activity_level: str | None = None,
    goal: str | None = None,
) -> HealthMetrics:
    """Compute BMI, BMR, maintenance and target calories, and macro targets."""
    height_m = height / 100
    bmi = weight / (height_m * height_m)
    bmr = calculate_bmr(weight, height, age, gender)
    maintenance = round(bmr * activity_multiplier(activity_level))
    target, adjustment = goal_adjusted_calories(maintenance, goal)

    return HealthMetrics(
        bmi=bmi,
        bmi_category=bmi_category(bmi),
        bmr=bmr,
        maintenance_calories=maintenance,
        target_calories=target,
        calorie_adjustment=adjustment,
        macros=macro_targets(weight, target, goal),
    )
