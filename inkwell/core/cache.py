"""
Key-value cache used for derived read-models such as the home feed.

The feed aggregator stores ``{"value": ..., "expiresAt": <epoch ms>}`` entries
and checks expiry itself; the backing TTLCache only bounds memory so stale
entries are eventually dropped even if nobody reads them.
"""

import threading
from typing import Any, Optional, Protocol

from cachetools import TTLCache


class Cache(Protocol):
    async def get(self, key: str) -> Optional[dict]: ...

    async def put(self, key: str, value: dict) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache backed by cachetools."""

    def __init__(self, maxsize: int = 256, ttl: float = 3600):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._cache.get(key)

    async def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    async def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all entries (useful for testing)."""
        with self._lock:
            self._cache.clear()
