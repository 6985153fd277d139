"""
cache.py

Two-tier TTL cache for read-only API responses.

Lookup order is memory, then durable storage. A durable hit re-populates the
memory tier. Stale entries are treated as absent and deleted lazily when they
are next looked up.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from subscriptarr import config
from subscriptarr.logger import get_logger
from subscriptarr.storage import Storage

logger = get_logger(__name__)

_MISSING = object()


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def generate_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Stable cache key: prefix plus params sorted by name.

    >>> generate_key("p", {"b": 2, "a": 1})
    'p:a:1|b:2'
    """
    if not params:
        return prefix
    parts = "|".join(f"{k}:{_format_param(params[k])}" for k in sorted(params))
    return f"{prefix}:{parts}"


class ResponseCache:
    def __init__(
        self,
        storage: Storage,
        ttl: float = config.DEFAULT_CACHE_TTL_SEC,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.ttl = ttl
        self._clock = clock
        self._memory: Dict[str, Tuple[Any, float]] = {}

    def _is_fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self.ttl

    async def _lookup(self, key: str) -> Any:
        hit = self._memory.get(key)
        if hit is not None:
            value, stored_at = hit
            if self._is_fresh(stored_at):
                return value
            del self._memory[key]

        data = await self.storage.get([key])
        entry = data.get(key)
        if not isinstance(entry, dict) or "storedAt" not in entry:
            return _MISSING

        stored_at = float(entry["storedAt"])
        if not self._is_fresh(stored_at):
            await self.storage.remove([key])
            return _MISSING

        value = entry.get("value")
        self._memory[key] = (value, stored_at)
        return value

    async def get(self, key: str) -> Any:
        """Cached value, or None when absent or stale."""
        value = await self._lookup(key)
        return None if value is _MISSING else value

    async def set(self, key: str, value: Any) -> None:
        stored_at = self._clock()
        self._memory[key] = (value, stored_at)

        try:
            await self.storage.set({key: {"value": value, "storedAt": stored_at}})
        except OSError as e:
            # Memory tier still serves this run.
            logger.warning(f"Cache write to durable storage failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        self._memory.pop(key, None)
        await self.storage.remove([key])

    async def wrap(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """Return the fresh cached value for `key`, else produce, store and return it."""
        value = await self._lookup(key)
        if value is not _MISSING:
            return value

        value = await producer()
        await self.set(key, value)
        return value

    async def clear_prefix(self, prefix: str) -> int:
        for key in [k for k in self._memory if k.startswith(prefix)]:
            del self._memory[key]

        durable = [k for k in await self.storage.keys() if k.startswith(prefix)]
        if durable:
            await self.storage.remove(durable)
            logger.debug(f"Cleared {len(durable)} cache entries with prefix: {prefix}")
        return len(durable)

    async def clear_all(self) -> int:
        self._memory.clear()
        return await self.clear_prefix(config.CACHE_NAMESPACE)

    async def stats(self) -> Dict[str, Any]:
        durable = [
            k for k in await self.storage.keys() if k.startswith(config.CACHE_NAMESPACE)
        ]
        return {
            "memory_size": len(self._memory),
            "durable_size": len(durable),
            "ttl": self.ttl,
        }
