"""
Recommendation cache.

Recommendations are derived data: they are cached for a short TTL and
never treated as the source of truth. Expired entries are never served;
they are dropped lazily on read and in bulk by ``purge_expired``. Values
are deep-copied on the way in and out, so a caller editing its response
never changes what later requests are served.
"""

import hashlib
import json
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from ..models.recommendation import Recommendation
from ..utils.locks import AsyncReadWriteLock


DEFAULT_TTL_SECONDS = 3600


def build_cache_key(user_id: str, target_date: date, options: Dict[str, Any]) -> str:
    """Key for a user, a day and the request options that shape the result."""
    options_str = json.dumps(options, sort_keys=True, default=str)
    options_hash = hashlib.sha256(options_str.encode()).hexdigest()[:16]
    return f"rec_{user_id}_{target_date.isoformat()}_{options_hash}"


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of cache occupancy."""

    total_entries: int
    expired_entries: int

    @property
    def live_entries(self) -> int:
        return self.total_entries - self.expired_entries

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_entries": self.total_entries,
            "expired_entries": self.expired_entries,
            "live_entries": self.live_entries,
        }


@runtime_checkable
class RecommendationCache(Protocol):
    """Protocol for recommendation cache implementations."""

    async def get(self, key: str) -> Optional[Recommendation]:
        """Get a live entry, None when missing or expired."""
        ...

    async def set(
        self,
        key: str,
        value: Recommendation,
        expire_seconds: Optional[int] = None,
    ) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def delete_user(self, user_id: str) -> int:
        """Drop every entry belonging to a user. Returns the number dropped."""
        ...

    async def purge_expired(self) -> int:
        """Drop expired entries. Returns the number dropped."""
        ...

    async def stats(self) -> CacheStats:
        ...


@dataclass
class _Entry:
    value: Recommendation
    expires_at: float


class InMemoryRecommendationCache:
    """
    Process-local TTL cache.

    Reads share the lock; the exclusive side is held only while the map
    is mutated. ``clock`` returns seconds and is injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = AsyncReadWriteLock()

    async def get(self, key: str) -> Optional[Recommendation]:
        async with self._lock.read():
            entry = self._entries.get(key)
            now = self._clock()
            if entry is None:
                return None
            if entry.expires_at > now:
                return entry.value.model_copy(deep=True)

        async with self._lock.write():
            current = self._entries.get(key)
            if current is not None and current.expires_at <= self._clock():
                del self._entries[key]
        return None

    async def set(
        self,
        key: str,
        value: Recommendation,
        expire_seconds: Optional[int] = None,
    ) -> None:
        ttl = self.ttl_seconds if expire_seconds is None else expire_seconds
        entry = _Entry(value=value.model_copy(deep=True), expires_at=self._clock() + ttl)
        async with self._lock.write():
            self._entries[key] = entry

    async def delete(self, key: str) -> None:
        async with self._lock.write():
            self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def delete_user(self, user_id: str) -> int:
        async with self._lock.write():
            keys = [k for k, e in self._entries.items() if e.value.user_id == user_id]
            for key in keys:
                del self._entries[key]
        return len(keys)

    async def purge_expired(self) -> int:
        async with self._lock.write():
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def stats(self) -> CacheStats:
        async with self._lock.read():
            now = self._clock()
            expired = sum(1 for e in self._entries.values() if e.expires_at <= now)
            return CacheStats(total_entries=len(self._entries), expired_entries=expired)
