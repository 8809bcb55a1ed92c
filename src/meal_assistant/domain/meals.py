"""Domain models for meal logging."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from meal_assistant.domain.nutrition import MacroProfile, sum_macros

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")

UNVERIFIED_ID = "unverified_id"
NOT_FOUND = "not_found"
UNPARSEABLE_CHANGE = "unparseable_change"


@dataclass(frozen=True)
class MealComponent:
    """Single food inside a meal with its own macros."""

    name: str
    quantity: str
    macros: MacroProfile

    def as_dict(self) -> dict[str, object]:
        """Return a flat dict suitable for storage and model prompts."""
        return {"name": self.name, "quantity": self.quantity, **self.macros.as_dict()}


@dataclass(frozen=True)
class MealDraft:
    """Meal content before the repository assigns identity."""

    meal_type: str
    foods: list[MealComponent]
    logged_at: datetime
    notes: str = ""

    @property
    def totals(self) -> MacroProfile:
        """Totals are always the sum of the foods."""
        return sum_macros(food.macros for food in self.foods)


@dataclass(frozen=True)
class MealEntry:
    """Persisted meal with identity and timestamps."""

    id: str
    user_id: UUID
    meal_type: str
    foods: list[MealComponent]
    totals: MacroProfile
    logged_at: datetime
    created_at: datetime
    notes: str = ""
    logged_via: str = "chat"
    updated_at: datetime | None = field(default=None)

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly view of the meal."""
        return {
            "id": self.id,
            "meal_type": self.meal_type,
            "logged_at": self.logged_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "foods": [food.as_dict() for food in self.foods],
            "totals": self.totals.as_dict(),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class MutationOutcome:
    """Result of applying a natural-language change to a meal."""

    success: bool
    summary: str
    meal: MealEntry | None = None
    error: str | None = None

    def as_payload(self) -> dict[str, object]:
        """Return the payload handed back to the model."""
        payload: dict[str, object] = {"success": self.success, "message": self.summary}
        if self.success and self.meal is not None:
            payload["updated_meal"] = self.meal.as_dict()
        return payload
