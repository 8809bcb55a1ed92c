"""Pending mutation storage and lifecycle helpers."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from meal_assistant.domain.pending import APPLY_MUTATION, PendingMutation

DEFAULT_PENDING_TTL_SECONDS = 300


class PendingMutationStore(Protocol):
    """Storage for at most one pending mutation per owner."""

    def get(self, user_id: UUID) -> PendingMutation | None:
        """Return the stored pending mutation, valid or not."""

    def save(self, pending: PendingMutation) -> None:
        """Store a pending mutation, replacing any previous one."""

    def clear(self, user_id: UUID) -> None:
        """Drop the owner's pending mutation."""


@dataclass
class InMemoryPendingMutationStore(PendingMutationStore):
    """Process-local pending mutation store keyed by owner."""

    _records: dict[UUID, PendingMutation]

    def __init__(self) -> None:
        self._records = {}

    def get(self, user_id: UUID) -> PendingMutation | None:
        """Return the owner's pending mutation, if any."""
        return self._records.get(user_id)

    def save(self, pending: PendingMutation) -> None:
        """Store the pending mutation under its owner."""
        self._records[pending.user_id] = pending

    def clear(self, user_id: UUID) -> None:
        """Remove the owner's pending mutation."""
        self._records.pop(user_id, None)


def create_pending(  # noqa: PLR0913
    user_id: UUID,
    target_id: str,
    mutation_description: str,
    confidence: str,
    now: datetime,
    ttl_seconds: int = DEFAULT_PENDING_TTL_SECONDS,
) -> PendingMutation:
    """Build a pending mutation expiring after the fixed window."""
    return PendingMutation(
        user_id=user_id,
        kind=APPLY_MUTATION,
        target_id=target_id,
        mutation_description=mutation_description,
        confidence=confidence,
        expires_at=now + timedelta(seconds=ttl_seconds),
    )


def active_pending(
    pending: PendingMutation | None, user_id: UUID, now: datetime
) -> PendingMutation | None:
    """Return the pending mutation only if it is usable for this owner now."""
    if pending is None:
        return None
    if pending.user_id != user_id or pending.kind != APPLY_MUTATION:
        return None
    if not pending.is_valid(now):
        return None
    return pending
