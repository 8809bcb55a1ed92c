"""Audit trail for meal changes."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_assistant.domain.audit import MEAL_UPDATED, AuditEvent


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(self, event: AuditEvent) -> None:
        """Persist one audit event."""


@dataclass
class AuditService:
    """Records what a meal looked like before and after a confirmed change."""

    repository: AuditRepository

    def record_meal_update(
        self,
        user_id: UUID,
        meal_id: str,
        before: dict[str, object],
        after: dict[str, object],
        changes_summary: str = "",
    ) -> AuditEvent:
        """Persist a meal update event and return it."""
        event = AuditEvent(
            user_id=user_id,
            entity_type="meal",
            entity_id=meal_id,
            event_type=MEAL_UPDATED,
            before=before,
            after=after,
            metadata={"changes_summary": changes_summary} if changes_summary else {},
        )
        self.repository.create_event(event)
        return event
