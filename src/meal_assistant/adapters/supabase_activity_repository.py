"""Supabase repository for activities."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from meal_assistant.adapters.supabase_query import execute_query
from meal_assistant.domain.activities import (
    ActivityDraft,
    ActivityEntry,
    ExerciseSet,
    PersonalBest,
)
from meal_assistant.errors import StoreUnavailableError
from meal_assistant.services.activities import ActivityRepository

_COLUMNS = (
    "id, user_id, activity_type, name, performed_at, duration_minutes, exercises, "
    "total_volume, distance, distance_unit, intensity, calories_burned, notes, "
    "logged_via, created_at, updated_at"
)


@dataclass
class SupabaseActivityRepository(ActivityRepository):
    """Supabase implementation for activities."""

    client: Client

    def create_activity(self, user_id: UUID, draft: ActivityDraft) -> ActivityEntry:
        """Insert an activity row and return it."""
        payload = {
            "user_id": str(user_id),
            "logged_via": "chat",
            **_draft_payload(draft),
        }
        response = execute_query(
            self.client.table("activities").insert(payload), "create activity"
        )
        if not response.data:
            raise StoreUnavailableError("Failed to create activity")
        return _parse_activity(response.data[0])

    def get_activity(self, user_id: UUID, activity_id: str) -> ActivityEntry | None:
        """Return an activity by id for the owner."""
        response = execute_query(
            self.client.table("activities")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("id", activity_id)
            .limit(1),
            "get activity",
        )
        if not response.data:
            return None
        return _parse_activity(response.data[0])

    def update_activity(
        self, user_id: UUID, activity_id: str, draft: ActivityDraft
    ) -> ActivityEntry | None:
        """Overwrite the activity's content and return the stored row."""
        payload = {
            **_draft_payload(draft),
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        response = execute_query(
            self.client.table("activities")
            .update(payload)
            .eq("user_id", str(user_id))
            .eq("id", activity_id),
            "update activity",
        )
        if not response.data:
            return None
        return _parse_activity(response.data[0])

    def list_recent_activities(
        self, user_id: UUID, limit: int, activity_type: str | None = None
    ) -> list[ActivityEntry]:
        """Return the newest activities by performed time."""
        query = (
            self.client.table("activities")
            .select(_COLUMNS)
            .eq("user_id", str(user_id))
        )
        if activity_type:
            query = query.eq("activity_type", activity_type)
        response = execute_query(
            query.order("performed_at", desc=True).limit(limit),
            "list recent activities",
        )
        return [_parse_activity(row) for row in response.data or []]


def _draft_payload(draft: ActivityDraft) -> dict[str, object]:
    return {
        "activity_type": draft.activity_type,
        "name": draft.name,
        "performed_at": draft.performed_at.isoformat(),
        "duration_minutes": draft.duration_minutes,
        "exercises": [exercise.as_dict() for exercise in draft.exercises],
        "total_volume": draft.total_volume,
        "distance": draft.distance,
        "distance_unit": draft.distance_unit,
        "intensity": draft.intensity,
        "calories_burned": draft.calories_burned,
        "notes": draft.notes,
    }


def _parse_activity(row: dict[str, object]) -> ActivityEntry:
    exercises_raw = row.get("exercises") or []
    updated_at = row.get("updated_at")
    return ActivityEntry(
        id=str(row["id"]),
        user_id=UUID(str(row["user_id"])),
        activity_type=str(row.get("activity_type") or "other"),
        name=str(row.get("name") or ""),
        performed_at=_parse_datetime(row.get("performed_at")),
        created_at=_parse_datetime(row.get("created_at")),
        notes=str(row.get("notes") or ""),
        duration_minutes=_optional_float(row.get("duration_minutes")),
        exercises=[
            _parse_exercise(exercise)
            for exercise in exercises_raw
            if isinstance(exercise, dict)
        ],
        distance=_optional_float(row.get("distance")),
        distance_unit=_optional_str(row.get("distance_unit")),
        intensity=_optional_str(row.get("intensity")),
        calories_burned=_optional_float(row.get("calories_burned")),
        logged_via=str(row.get("logged_via") or "chat"),
        updated_at=_parse_datetime(updated_at) if updated_at else None,
    )


def _parse_exercise(data: dict[str, object]) -> ExerciseSet:
    best = data.get("previous_best")
    previous_best = None
    if isinstance(best, dict) and best.get("weight") is not None:
        previous_best = PersonalBest(
            weight=float(best["weight"]),
            unit=str(best.get("unit") or "lbs"),
            achieved_at=_parse_datetime(best.get("date")),
        )
    return ExerciseSet(
        name=str(data.get("name", "")),
        sets=int(data.get("sets") or 0),
        reps=int(data.get("reps") or 0),
        weight=float(data.get("weight") or 0.0),
        unit=str(data.get("unit") or "lbs"),
        is_pr=bool(data.get("is_pr", False)),
        previous_best=previous_best,
    )


def _optional_float(raw: object) -> float | None:
    if raw is None:
        return None
    return float(raw)


def _optional_str(raw: object) -> str | None:
    if raw is None or raw == "":
        return None
    return str(raw)


def _parse_datetime(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.min.replace(tzinfo=UTC)
