"""Plain-text rendering of meals and activities for chat replies."""

from datetime import datetime
from zoneinfo import ZoneInfo

from meal_assistant.domain.activities import ActivityEntry, ExerciseSet
from meal_assistant.domain.meals import MealComponent, MealEntry
from meal_assistant.domain.nutrition import MacroProfile


def format_macros(macros: MacroProfile) -> str:
    """Format macros as '180 cal | 12g P, 1g C, 14g F, 0g Fb'."""
    return (
        f"{macros.calories:.0f} cal | "
        f"{_trim_number(macros.protein_g)}g P, "
        f"{_trim_number(macros.carbs_g)}g C, "
        f"{_trim_number(macros.fat_g)}g F, "
        f"{_trim_number(macros.fiber_g)}g Fb"
    )


def format_time(value: datetime, timezone_name: str) -> str:
    """Format a timestamp in the user's timezone, e.g. 'Mon Nov 03, 09:15'."""
    return value.astimezone(ZoneInfo(timezone_name)).strftime("%a %b %d, %H:%M")


def format_foods(foods: list[MealComponent]) -> str:
    """Join food names with their quantities."""
    if not foods:
        return "no foods"
    parts = []
    for food in foods:
        if not food.quantity:
            parts.append(food.name)
        elif food.name.lower() in food.quantity.lower():
            parts.append(food.quantity)
        else:
            parts.append(f"{food.quantity} {food.name}")
    return ", ".join(parts)


def describe_meal(meal: MealEntry, timezone_name: str) -> str:
    """One-line description of a meal for the user."""
    return (
        f"your {meal.meal_type} from {format_time(meal.logged_at, timezone_name)} "
        f"with {format_foods(meal.foods)} ({format_macros(meal.totals)})"
    )


def format_exercise(exercise: ExerciseSet) -> str:
    """Format an exercise as 'Bench Press 3x8 @ 185 lbs'."""
    return (
        f"{exercise.name} {exercise.sets}x{exercise.reps} "
        f"@ {_trim_number(exercise.weight)} {exercise.unit}"
    )


def describe_activity(activity: ActivityEntry, timezone_name: str) -> str:
    """One-line description of an activity for the user."""
    details = []
    if activity.exercises:
        details.append(", ".join(format_exercise(item) for item in activity.exercises))
    if activity.duration_minutes:
        details.append(f"{_trim_number(activity.duration_minutes)} min")
    if activity.distance:
        details.append(f"{_trim_number(activity.distance)} {activity.distance_unit}")
    when = format_time(activity.performed_at, timezone_name)
    if not details:
        return f"your {activity.name} from {when}"
    return f"your {activity.name} from {when} ({'; '.join(details)})"


def format_personal_records(records: list[dict[str, object]]) -> str:
    """Celebrate personal records from an operation payload, or return ''."""
    lines = []
    for record in records:
        line = (
            f"NEW PR! {record['exercise']} "
            f"{_trim_number(float(record['weight']))} {record['unit']}"
        )
        best = record.get("previous_best")
        if isinstance(best, dict):
            previous = _trim_number(float(best["weight"]))
            line += f" (previous best {previous} {best['unit']})"
        lines.append(line)
    return " ".join(lines)


def _trim_number(value: float) -> str:
    rounded = round(value, 1)
    if rounded == int(rounded):
        return str(int(rounded))
    return str(rounded)
