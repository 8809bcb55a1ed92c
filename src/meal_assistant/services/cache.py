"""Expiring key-value cache used for short-lived per-user state."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Key-value store whose entries expire."""

    def get(self, key: str) -> object | None:
        """Return the value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value for ttl_seconds."""

    def delete(self, key: str) -> None:
        """Drop a value if present."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemoryCache(Cache):
    """Process-local expiring cache; stale entries are dropped on access."""

    clock: Callable[[], datetime] = _utcnow
    _entries: dict[str, tuple[object, datetime]] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        """Return the value unless it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value, purging anything already expired."""
        now = self.clock()
        self.purge_expired(now)
        self._entries[key] = (value, now + timedelta(seconds=ttl_seconds))

    def delete(self, key: str) -> None:
        """Remove a value."""
        self._entries.pop(key, None)

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop expired entries and return how many were removed."""
        now = now or self.clock()
        expired = [key for key, (_, at) in self._entries.items() if now >= at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
