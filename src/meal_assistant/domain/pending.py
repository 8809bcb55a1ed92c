"""Pending mutation awaiting user confirmation."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

APPLY_MUTATION = "apply-mutation"


@dataclass(frozen=True)
class PendingMutation:
    """Resolved target plus the raw change request, valid for a short window."""

    user_id: UUID
    kind: str
    target_id: str
    mutation_description: str
    confidence: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Return true when all fields are present and the window is open."""
        if not (self.kind and self.target_id and self.mutation_description):
            return False
        return now <= self.expires_at
