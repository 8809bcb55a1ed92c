"""Supabase repository for meals."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from meal_assistant.adapters.supabase_query import execute_query
from meal_assistant.domain.meals import MealComponent, MealDraft, MealEntry
from meal_assistant.domain.nutrition import MacroProfile
from meal_assistant.errors import StoreUnavailableError
from meal_assistant.services.meals import MealRepository

_COLUMNS = (
    "id, user_id, meal_type, foods, total_calories, total_protein_g, "
    "total_carbs_g, total_fat_g, total_fiber_g, notes, logged_via, logged_at, "
    "created_at, updated_at"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meals."""

    client: Client

    def create_meal(self, user_id: UUID, draft: MealDraft) -> MealEntry:
        """Insert a meal row and return it."""
        payload = {
            "user_id": str(user_id),
            "logged_via": "chat",
            **_draft_payload(draft),
        }
        response = execute_query(
            self.client.table("meals").insert(payload), "create meal"
        )
        if not response.data:
            raise StoreUnavailableError("Failed to create meal")
        return _parse_meal(response.data[0])

    def get_meal(self, user_id: UUID, meal_id: str) -> MealEntry | None:
        """Return a meal by id for the owner."""
        response = execute_query(
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("id", meal_id)
            .limit(1),
            "get meal",
        )
        if not response.data:
            return None
        return _parse_meal(response.data[0])

    def update_meal(
        self, user_id: UUID, meal_id: str, draft: MealDraft
    ) -> MealEntry | None:
        """Overwrite the meal's content and return the stored row."""
        payload = {
            **_draft_payload(draft),
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        response = execute_query(
            self.client.table("meals")
            .update(payload)
            .eq("user_id", str(user_id))
            .eq("id", meal_id),
            "update meal",
        )
        if not response.data:
            return None
        return _parse_meal(response.data[0])

    def list_recent_meals(self, user_id: UUID, limit: int) -> list[MealEntry]:
        """Return the newest meals by creation time."""
        response = execute_query(
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit),
            "list recent meals",
        )
        return [_parse_meal(row) for row in response.data or []]

    def list_meals_between(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealEntry]:
        """Return meals eaten in the time range."""
        response = execute_query(
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .gte("logged_at", start.isoformat())
            .lt("logged_at", end.isoformat())
            .order("logged_at", desc=False),
            "list meals",
        )
        return [_parse_meal(row) for row in response.data or []]


def _draft_payload(draft: MealDraft) -> dict[str, object]:
    totals = draft.totals
    return {
        "meal_type": draft.meal_type,
        "foods": [food.as_dict() for food in draft.foods],
        "total_calories": totals.calories,
        "total_protein_g": totals.protein_g,
        "total_carbs_g": totals.carbs_g,
        "total_fat_g": totals.fat_g,
        "total_fiber_g": totals.fiber_g,
        "notes": draft.notes,
        "logged_at": draft.logged_at.isoformat(),
    }


def _parse_meal(row: dict[str, object]) -> MealEntry:
    foods_raw = row.get("foods") or []
    foods = [
        MealComponent(
            name=str(food.get("name", "")),
            quantity=str(food.get("quantity", "")),
            macros=_macros(food, prefix=""),
        )
        for food in foods_raw
        if isinstance(food, dict)
    ]
    updated_at = row.get("updated_at")
    return MealEntry(
        id=str(row["id"]),
        user_id=UUID(str(row["user_id"])),
        meal_type=str(row.get("meal_type", "snack")),
        foods=foods,
        totals=_macros(row, prefix="total_"),
        logged_at=_parse_datetime(row.get("logged_at")),
        created_at=_parse_datetime(row.get("created_at")),
        notes=str(row.get("notes") or ""),
        logged_via=str(row.get("logged_via") or "chat"),
        updated_at=_parse_datetime(updated_at) if updated_at else None,
    )


def _macros(data: dict[str, object], prefix: str) -> MacroProfile:
    return MacroProfile(
        calories=float(data.get(f"{prefix}calories") or 0.0),
        protein_g=float(data.get(f"{prefix}protein_g") or 0.0),
        carbs_g=float(data.get(f"{prefix}carbs_g") or 0.0),
        fat_g=float(data.get(f"{prefix}fat_g") or 0.0),
        fiber_g=float(data.get(f"{prefix}fiber_g") or 0.0),
    )


def _parse_datetime(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.min.replace(tzinfo=UTC)
