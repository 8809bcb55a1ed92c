"""Activity logging service with personal record detection."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from meal_assistant.domain.activities import (
    STRENGTH_TRAINING,
    ActivityDraft,
    ActivityEntry,
    ExerciseSet,
    PersonalBest,
    SessionUpdateOutcome,
    convert_weight,
)
from meal_assistant.services.provenance import LookupIdRegistry, looks_fabricated

_logger = logging.getLogger(__name__)

DEFAULT_PR_HISTORY_LIMIT = 50

UNVERIFIED_SESSION_MESSAGE = (
    "ERROR: That session ID was not returned by an activity lookup. "
    "Call find_recent_activities first and use an ID from its results."
)
SESSION_NOT_FOUND_MESSAGE = (
    "Session not found. It may have been deleted or the ID is incorrect."
)


class ActivityRepository(Protocol):
    """Persistence interface for activities, scoped by owner."""

    def create_activity(self, user_id: UUID, draft: ActivityDraft) -> ActivityEntry:
        """Create an activity and return it with its assigned id."""

    def get_activity(self, user_id: UUID, activity_id: str) -> ActivityEntry | None:
        """Return an activity by id, if the owner has it."""

    def update_activity(
        self, user_id: UUID, activity_id: str, draft: ActivityDraft
    ) -> ActivityEntry | None:
        """Overwrite an activity with the draft and return the stored row."""

    def list_recent_activities(
        self, user_id: UUID, limit: int, activity_type: str | None = None
    ) -> list[ActivityEntry]:
        """Return the newest activities, optionally of one type."""


@dataclass
class ActivityLogService:
    """Logs activities and groups strength exercises into sessions."""

    repository: ActivityRepository
    registry: LookupIdRegistry
    pr_history_limit: int = DEFAULT_PR_HISTORY_LIMIT

    def log_activity(self, user_id: UUID, draft: ActivityDraft) -> ActivityEntry:
        """Persist a new activity, flagging exercises that beat earlier bests."""
        if draft.exercises:
            draft = replace(
                draft, exercises=self.detect_personal_records(user_id, draft.exercises)
            )
        activity = self.repository.create_activity(user_id, draft)
        _logger.info(
            "Activity logged: user_id=%s activity_id=%s type=%s prs=%s",
            user_id,
            activity.id,
            activity.activity_type,
            len(activity.personal_records),
        )
        return activity

    def recent_activities(  # noqa: PLR0913
        self,
        user_id: UUID,
        limit: int,
        within_minutes: int | None = None,
        activity_type: str | None = None,
        now: datetime | None = None,
    ) -> list[ActivityEntry]:
        """Return recent activities and register their ids as looked up."""
        activities = self.repository.list_recent_activities(
            user_id, limit, activity_type
        )
        if within_minutes:
            cutoff = (now or datetime.now(tz=UTC)) - timedelta(minutes=within_minutes)
            activities = [
                activity
                for activity in activities
                if activity.last_active_at >= cutoff
            ]
        self.registry.remember(user_id, (activity.id for activity in activities))
        return activities

    def add_exercises(
        self,
        user_id: UUID,
        session_id: str,
        exercises: list[ExerciseSet],
        name: str | None = None,
        notes: str | None = None,
    ) -> SessionUpdateOutcome:
        """Append exercises to a strength session the user looked up."""
        if looks_fabricated(session_id) or not self.registry.is_known(
            user_id, session_id
        ):
            _logger.warning(
                "Rejected unverified session id: user_id=%s session_id=%s",
                user_id,
                session_id,
            )
            return SessionUpdateOutcome(
                success=False, message=UNVERIFIED_SESSION_MESSAGE
            )

        existing = self.repository.get_activity(user_id, session_id)
        if existing is None:
            self.registry.forget(user_id, session_id)
            return SessionUpdateOutcome(
                success=False, message=SESSION_NOT_FOUND_MESSAGE
            )
        if existing.activity_type != STRENGTH_TRAINING:
            return SessionUpdateOutcome(
                success=False,
                message=(
                    "Can only add exercises to strength training sessions, not "
                    f"{existing.activity_type}"
                ),
            )

        checked = self.detect_personal_records(user_id, exercises)
        draft = replace(
            existing.as_draft(),
            name=(name or "").strip() or existing.name,
            exercises=[*existing.exercises, *checked],
            notes=_append_note(existing.notes, notes),
        )
        updated = self.repository.update_activity(user_id, session_id, draft)
        if updated is None:
            self.registry.forget(user_id, session_id)
            return SessionUpdateOutcome(
                success=False, message=SESSION_NOT_FOUND_MESSAGE
            )
        _logger.info(
            "Session extended: user_id=%s session_id=%s exercises=%s volume=%.0f",
            user_id,
            session_id,
            len(updated.exercises),
            updated.total_volume,
        )
        return SessionUpdateOutcome(
            success=True,
            message=f"Added {len(exercises)} exercise(s) to session",
            activity=updated,
            added=checked,
        )

    def detect_personal_records(
        self, user_id: UUID, exercises: list[ExerciseSet]
    ) -> list[ExerciseSet]:
        """Compare exercises against recent strength sessions."""
        history = self.repository.list_recent_activities(
            user_id, self.pr_history_limit, STRENGTH_TRAINING
        )
        return mark_personal_records(exercises, history)


def mark_personal_records(
    exercises: Iterable[ExerciseSet], history: list[ActivityEntry]
) -> list[ExerciseSet]:
    """Flag exercises heavier than any earlier lift of the same name.

    Weights are compared in the new exercise's unit. A first-ever lift is
    not a personal record.
    """
    marked = []
    for exercise in exercises:
        best = previous_best(exercise, history)
        if best is None:
            marked.append(replace(exercise, is_pr=False, previous_best=None))
            continue
        best_weight = convert_weight(best.weight, best.unit, exercise.unit)
        is_pr = exercise.weight > best_weight
        marked.append(
            replace(exercise, is_pr=is_pr, previous_best=best if is_pr else None)
        )
    return marked


def previous_best(
    exercise: ExerciseSet, history: list[ActivityEntry]
) -> PersonalBest | None:
    """Return the heaviest earlier lift of the exercise, if any."""
    name = exercise.name.strip().lower()
    best: PersonalBest | None = None
    best_weight = 0.0
    for session in history:
        for past in session.exercises:
            if past.name.strip().lower() != name or past.weight <= 0:
                continue
            weight = convert_weight(past.weight, past.unit, exercise.unit)
            if weight > best_weight:
                best_weight = weight
                best = PersonalBest(
                    weight=past.weight,
                    unit=past.unit,
                    achieved_at=session.performed_at,
                )
    return best


def _append_note(existing: str, addition: str | None) -> str:
    addition = (addition or "").strip()
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}\n{addition}"
