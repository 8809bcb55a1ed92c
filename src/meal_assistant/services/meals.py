"""Meal logging service."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from meal_assistant.domain.meals import MealComponent, MealDraft, MealEntry
from meal_assistant.domain.nutrition import MacroProfile
from meal_assistant.domain.oracle import FoodItem

_logger = logging.getLogger(__name__)


class MealRepository(Protocol):
    """Persistence interface for meals, scoped by owner."""

    def create_meal(self, user_id: UUID, draft: MealDraft) -> MealEntry:
        """Create a meal and return it with its assigned id."""

    def get_meal(self, user_id: UUID, meal_id: str) -> MealEntry | None:
        """Return a meal by id, if the owner has it."""

    def update_meal(
        self, user_id: UUID, meal_id: str, draft: MealDraft
    ) -> MealEntry | None:
        """Overwrite a meal with the draft and return the stored row."""

    def list_recent_meals(self, user_id: UUID, limit: int) -> list[MealEntry]:
        """Return the newest meals by creation time."""

    def list_meals_between(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealEntry]:
        """Return meals eaten within a time range."""


@dataclass
class MealLogService:
    """Service that builds meal drafts and persists them."""

    repository: MealRepository

    def log_meal(  # noqa: PLR0913
        self,
        user_id: UUID,
        meal_type: str,
        foods: list[MealComponent],
        logged_at: datetime | None = None,
        notes: str = "",
    ) -> MealEntry:
        """Persist a new meal with totals summed from its foods."""
        draft = MealDraft(
            meal_type=meal_type,
            foods=foods,
            logged_at=logged_at or datetime.now(tz=UTC),
            notes=notes,
        )
        meal = self.repository.create_meal(user_id, draft)
        _logger.info(
            "Meal logged: user_id=%s meal_id=%s calories=%.0f",
            user_id,
            meal.id,
            meal.totals.calories,
        )
        return meal

    def recent_meals(
        self, user_id: UUID, limit: int, contains_food: str | None = None
    ) -> list[MealEntry]:
        """Return recent meals, optionally only those containing a food."""
        meals = self.repository.list_recent_meals(user_id, limit)
        if not contains_food:
            return meals
        needle = contains_food.strip().lower()
        return [
            meal
            for meal in meals
            if any(needle in food.name.lower() for food in meal.foods)
        ]

    def get_meal(self, user_id: UUID, meal_id: str) -> MealEntry | None:
        """Return a meal by id."""
        return self.repository.get_meal(user_id, meal_id)

    def replace_meal(
        self, user_id: UUID, meal_id: str, draft: MealDraft
    ) -> MealEntry | None:
        """Overwrite every field of a meal with the draft."""
        return self.repository.update_meal(user_id, meal_id, draft)


def build_components(items: Iterable[FoodItem]) -> list[MealComponent]:
    """Convert model-produced food items into meal components."""
    return [
        MealComponent(
            name=item.name.strip(),
            quantity=item.quantity.strip(),
            macros=MacroProfile(
                calories=item.calories,
                protein_g=item.protein_g,
                carbs_g=item.carbs_g,
                fat_g=item.fat_g,
                fiber_g=item.fiber_g,
            ),
        )
        for item in items
    ]


def parse_timestamp(raw: str | None) -> datetime | None:
    """Parse an ISO timestamp, assuming UTC when no offset is given."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
