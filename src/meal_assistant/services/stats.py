"""Daily summary service for logged meals."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from meal_assistant.domain.nutrition import sum_macros
from meal_assistant.domain.stats import DailySummary
from meal_assistant.services.meals import MealRepository

DEFAULT_CALORIE_TARGET = 2400.0


@dataclass
class StatsService:
    """Service for computing per-day totals in the user's timezone."""

    repository: MealRepository
    calorie_target: float = DEFAULT_CALORIE_TARGET

    def get_day(
        self, user_id: UUID, timezone_name: str, day: date | None = None
    ) -> DailySummary:
        """Return totals for a local day, today when no day is given."""
        tz = ZoneInfo(timezone_name)
        target_day = day or datetime.now(tz=tz).date()
        start = datetime(target_day.year, target_day.month, target_day.day, tzinfo=tz)
        end = start + timedelta(days=1)
        meals = self.repository.list_meals_between(
            user_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        meals = [
            meal for meal in meals if meal.logged_at.astimezone(tz).date() == target_day
        ]
        return DailySummary(
            day=target_day,
            totals=sum_macros(meal.totals for meal in meals),
            calorie_target=self.calorie_target,
            meals=meals,
        )
