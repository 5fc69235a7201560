"""Key-value cache gateway with TTL and tag invalidation.

Only single-key operations plus ``invalidate_tag`` are exposed; callers
never rely on wildcard key deletion. Every key is registered under one or
more tags when it is written, and a tag invalidation drops exactly the
keys registered under it.
"""

import logging
import time
from collections import OrderedDict
from functools import lru_cache
from typing import Any, Iterable, Optional, Protocol

from b2b_market.app.config import get_settings

logger = logging.getLogger(__name__)


class CacheGateway(Protocol):
    """Interface the services depend on."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(
        self, key: str, value: Any, ttl: Optional[int] = None, tags: Iterable[str] = ()
    ) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def invalidate_tag(self, tag: str) -> int: ...


class InMemoryCache:
    """Process-local cache with per-entry expiry and an LRU bound."""

    def __init__(self, default_ttl: int = 300, max_items: int = 5000):
        self.default_ttl = default_ttl
        self.max_items = max_items
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._tags: dict[str, set[str]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._drop(key)
            return None
        self._entries.move_to_end(key)
        return value

    async def set(
        self, key: str, value: Any, ttl: Optional[int] = None, tags: Iterable[str] = ()
    ) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (time.monotonic() + ttl, value)
        self._entries.move_to_end(key)
        for tag in tags:
            self._tags.setdefault(tag, set()).add(key)

        while len(self._entries) > self.max_items:
            oldest, _ = next(iter(self._entries.items()))
            self._drop(oldest)

    async def delete(self, key: str) -> None:
        self._drop(key)

    async def invalidate_tag(self, tag: str) -> int:
        keys = self._tags.pop(tag, set())
        for key in keys:
            self._entries.pop(key, None)
        return len(keys)

    def _drop(self, key: str) -> None:
        self._entries.pop(key, None)
        for keys in self._tags.values():
            keys.discard(key)

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache
def get_cache() -> InMemoryCache:
    """Return the process-wide cache instance (FastAPI dependency)."""
    settings = get_settings()
    return InMemoryCache(
        default_ttl=settings.cache_ttl_seconds,
        max_items=settings.cache_max_items,
    )
