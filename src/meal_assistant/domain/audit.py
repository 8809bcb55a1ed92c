"""Audit trail records."""

from dataclasses import dataclass, field
from uuid import UUID

MEAL_UPDATED = "meal.updated"


@dataclass(frozen=True)
class AuditEvent:
    """Before/after snapshot of a change to one entity."""

    user_id: UUID
    entity_type: str
    entity_id: str
    event_type: str
    before: dict[str, object] | None
    after: dict[str, object] | None
    metadata: dict[str, object] = field(default_factory=dict)
