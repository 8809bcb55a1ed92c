"""Registry of record ids the user was actually shown."""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from meal_assistant.services.cache import Cache

PLACEHOLDER_IDS = frozenset(
    {
        "xyz789",
        "abc123",
        "12345",
        "mealid_placeholder",
        "meal_placeholder",
        "meal_id",
        "<meal_id>",
        "sessionid_placeholder",
        "session_placeholder",
        "session_id",
        "<session_id>",
    }
)
MIN_RECORD_ID_LENGTH = 10


@dataclass
class LookupIdRegistry:
    """Remembers ids returned by lookups, per owner, for a limited time.

    Meals and activities use separate namespaces so an id looked up as one
    kind of record is never accepted as the other.
    """

    cache: Cache
    ttl_seconds: int = 1800
    namespace: str = "meal"

    def remember(self, user_id: UUID, record_ids: Iterable[str]) -> None:
        """Mark ids as legitimately looked up for this owner."""
        for record_id in record_ids:
            self.cache.set(
                self._key(user_id, record_id), True, ttl_seconds=self.ttl_seconds
            )

    def is_known(self, user_id: UUID, record_id: str) -> bool:
        """Return true when the id came from a lookup for this owner."""
        return self.cache.get(self._key(user_id, record_id)) is True

    def forget(self, user_id: UUID, record_id: str) -> None:
        """Drop an id that no longer resolves to a stored record."""
        self.cache.delete(self._key(user_id, record_id))

    def _key(self, user_id: UUID, record_id: str) -> str:
        return f"{self.namespace}-id:{user_id}:{record_id.strip()}"


def looks_fabricated(record_id: str) -> bool:
    """Return true for ids that look invented rather than looked up."""
    cleaned = record_id.strip()
    if len(cleaned) < MIN_RECORD_ID_LENGTH:
        return True
    return cleaned.lower() in PLACEHOLDER_IDS
