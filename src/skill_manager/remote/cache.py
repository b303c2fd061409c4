"""In-memory response cache with expiry and ETag validators."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    """A cached payload with an absolute expiry time and optional ETag."""

    data: Any
    expires_at: float
    etag: str | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class ResponseCache:
    """
    Cache for remote API responses, keyed by ``(operation, repository, path)``.

    Owned by the client that fills it; entries live as long as the cache
    object does. Expired entries are kept so their ETag can be used to
    revalidate them.

    Example:
        cache = ResponseCache(ttl=600)
        cache.store(("tree", "acme/demo", ""), payload, etag='"abc"')
        entry = cache.lookup(("tree", "acme/demo", ""))
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[tuple[str, str, str], CacheEntry] = {}

    def now(self) -> float:
        return self._clock()

    def lookup(self, key: tuple[str, str, str]) -> CacheEntry | None:
        """Return the entry for *key*, expired or not."""
        return self._entries.get(key)

    def get_fresh(self, key: tuple[str, str, str]) -> Any | None:
        """Return the payload for *key* if it has not expired."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self.now()):
            return None
        return entry.data

    def store(self, key: tuple[str, str, str], data: Any, etag: str | None = None) -> CacheEntry:
        """Replace the payload for *key* and restart its lifetime."""
        entry = CacheEntry(data=data, expires_at=self.now() + self.ttl, etag=etag)
        self._entries[key] = entry
        return entry

    def touch(self, key: tuple[str, str, str]) -> CacheEntry | None:
        """Extend the lifetime of *key* without changing its payload."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.expires_at = self.now() + self.ttl
        return entry

    def clear(self) -> None:
        """Discard every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
