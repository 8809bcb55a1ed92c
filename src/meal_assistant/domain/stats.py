"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import date

from meal_assistant.domain.meals import MealEntry
from meal_assistant.domain.nutrition import MacroProfile


@dataclass(frozen=True)
class DailySummary:
    """Totals for one local day."""

    day: date
    totals: MacroProfile
    calorie_target: float
    meals: list[MealEntry]

    @property
    def progress(self) -> float:
        """Share of the calorie target eaten, capped at 1."""
        if self.calorie_target <= 0:
            return 0.0
        return min(self.totals.calories / self.calorie_target, 1.0)
