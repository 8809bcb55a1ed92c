"""Domain models for activity logging."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

STRENGTH_TRAINING = "strength_training"
ACTIVITY_TYPES = (
    STRENGTH_TRAINING,
    "cardio",
    "sport",
    "class",
    "flexibility",
    "other",
)
INTENSITIES = ("low", "moderate", "high")
WEIGHT_UNITS = ("lbs", "kg")
DISTANCE_UNITS = ("miles", "km")
LBS_PER_KG = 2.20462


def convert_weight(weight: float, from_unit: str, to_unit: str) -> float:
    """Convert a weight between lbs and kg."""
    if from_unit == to_unit:
        return weight
    if from_unit == "kg" and to_unit == "lbs":
        return weight * LBS_PER_KG
    if from_unit == "lbs" and to_unit == "kg":
        return weight / LBS_PER_KG
    return weight


@dataclass(frozen=True)
class PersonalBest:
    """Heaviest earlier lift of an exercise."""

    weight: float
    unit: str
    achieved_at: datetime

    def as_dict(self) -> dict[str, object]:
        return {
            "weight": self.weight,
            "unit": self.unit,
            "date": self.achieved_at.isoformat(),
        }


@dataclass(frozen=True)
class ExerciseSet:
    """One strength exercise performed as sets x reps at a weight."""

    name: str
    sets: int
    reps: int
    weight: float
    unit: str
    is_pr: bool = False
    previous_best: PersonalBest | None = None

    @property
    def volume(self) -> float:
        return self.sets * self.reps * self.weight

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly view of the exercise."""
        return {
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "weight": self.weight,
            "unit": self.unit,
            "is_pr": self.is_pr,
            "previous_best": (
                self.previous_best.as_dict() if self.previous_best else None
            ),
        }


def total_volume(exercises: Iterable[ExerciseSet]) -> float:
    """Sum sets x reps x weight across exercises, as recorded."""
    return sum((exercise.volume for exercise in exercises), 0.0)


@dataclass(frozen=True)
class ActivityDraft:
    """Activity content before the repository assigns identity."""

    activity_type: str
    name: str
    performed_at: datetime
    notes: str = ""
    duration_minutes: float | None = None
    exercises: list[ExerciseSet] = field(default_factory=list)
    distance: float | None = None
    distance_unit: str | None = None
    intensity: str | None = None
    calories_burned: float | None = None

    @property
    def total_volume(self) -> float:
        return total_volume(self.exercises)


@dataclass(frozen=True)
class ActivityEntry:
    """Persisted activity or workout session."""

    id: str
    user_id: UUID
    activity_type: str
    name: str
    performed_at: datetime
    created_at: datetime
    notes: str = ""
    duration_minutes: float | None = None
    exercises: list[ExerciseSet] = field(default_factory=list)
    distance: float | None = None
    distance_unit: str | None = None
    intensity: str | None = None
    calories_burned: float | None = None
    logged_via: str = "chat"
    updated_at: datetime | None = None

    @property
    def total_volume(self) -> float:
        return total_volume(self.exercises)

    @property
    def last_active_at(self) -> datetime:
        """Time of the latest change, so a growing session stays recent."""
        return self.updated_at or self.performed_at

    @property
    def personal_records(self) -> list[ExerciseSet]:
        return [exercise for exercise in self.exercises if exercise.is_pr]

    def as_draft(self) -> ActivityDraft:
        return ActivityDraft(
            activity_type=self.activity_type,
            name=self.name,
            performed_at=self.performed_at,
            notes=self.notes,
            duration_minutes=self.duration_minutes,
            exercises=list(self.exercises),
            distance=self.distance,
            distance_unit=self.distance_unit,
            intensity=self.intensity,
            calories_burned=self.calories_burned,
        )

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-friendly view with the fields relevant to the type."""
        data: dict[str, object] = {
            "id": self.id,
            "type": self.activity_type,
            "name": self.name,
            "performed_at": self.performed_at.isoformat(),
            "duration_minutes": self.duration_minutes,
            "notes": self.notes,
        }
        if self.activity_type == STRENGTH_TRAINING:
            data["exercises"] = [exercise.as_dict() for exercise in self.exercises]
            data["total_volume"] = self.total_volume
            return data
        if self.distance is not None:
            data["distance"] = self.distance
            data["distance_unit"] = self.distance_unit
        if self.intensity is not None:
            data["intensity"] = self.intensity
        if self.calories_burned is not None:
            data["calories_burned"] = self.calories_burned
        return data


@dataclass(frozen=True)
class SessionUpdateOutcome:
    """Result of adding exercises to an existing strength session."""

    success: bool
    message: str
    activity: ActivityEntry | None = None
    added: list[ExerciseSet] = field(default_factory=list)

    def as_payload(self) -> dict[str, object]:
        """Return the payload handed back to the model."""
        payload: dict[str, object] = {"success": self.success, "message": self.message}
        if not self.success or self.activity is None:
            return payload
        payload["session_id"] = self.activity.id
        payload["updated_session"] = {
            "id": self.activity.id,
            "name": self.activity.name,
            "type": self.activity.activity_type,
            "exercise_count": len(self.activity.exercises),
            "total_volume": self.activity.total_volume,
        }
        records = personal_records_payload(self.added)
        if records:
            payload["prs_achieved"] = records
        return payload


def personal_records_payload(
    exercises: Iterable[ExerciseSet],
) -> list[dict[str, object]]:
    """Describe the exercises that beat an earlier best."""
    return [
        {
            "exercise": exercise.name,
            "weight": exercise.weight,
            "unit": exercise.unit,
            "previous_best": (
                exercise.previous_best.as_dict() if exercise.previous_best else None
            ),
        }
        for exercise in exercises
        if exercise.is_pr
    ]
