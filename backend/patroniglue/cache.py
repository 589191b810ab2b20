"""In-memory TTL cache for resolved status booleans, with a background evictor."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from typing import Callable, Optional, Protocol

from patroniglue.models import CacheConfig, CacheEntry

logger = logging.getLogger("patroniglue.cache")


class CacheWriteError(RuntimeError):
    """Raised when a freshly resolved value cannot be stored."""


class Cache(Protocol):
    async def get(self, key: str) -> Optional[bool]: ...

    async def set(self, key: str, value: bool) -> None: ...


class ManagedCache(Cache, Protocol):
    """A cache with a background lifecycle, as driven by the app lifespan."""

    @property
    def ttl(self) -> float: ...

    @property
    def interval(self) -> float: ...

    async def startup(self) -> None: ...

    async def shutdown(self) -> None: ...


class MemoryCache:
    """Key/value store shared by every probe handler.

    A single asyncio lock guards the mapping; the evictor takes the same lock
    for its sweep. With ``ttl <= 0`` the cache is a pass-through: reads always
    miss and writes are dropped.
    """

    def __init__(
        self,
        ttl_seconds: float = 0.0,
        interval_seconds: float = 0.25,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = float(ttl_seconds)
        self._interval = float(interval_seconds) if interval_seconds and interval_seconds > 0 else 0.25
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._expire_task: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    def from_config(cls, config: CacheConfig) -> "MemoryCache":
        return cls(ttl_seconds=config.ttl, interval_seconds=config.interval)

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._expire_task is not None and not self._expire_task.done()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[bool]:
        if not self.enabled:
            return None
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("value for key '%s' not found in cache", key)
                return None
            if entry.age(self._clock()) > self._ttl:
                logger.debug("value for key '%s' expired in cache", key)
                return None
            logger.debug("value for key '%s' found in cache", key)
            return entry.value

    async def set(self, key: str, value: bool) -> None:
        if not self.enabled:
            return
        if self._closed:
            raise CacheWriteError(f"cache is closed, cannot store key '{key}'")
        logger.debug("setting value for key '%s' in cache", key)
        async with self._lock:
            self._entries[key] = CacheEntry(value=bool(value), inserted_at=self._clock())

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    async def sweep(self) -> int:
        """Remove every entry older than the ttl. Returns the number removed."""
        now = self._clock()
        async with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.age(now) > self._ttl]
            for key in expired:
                logger.debug("deleting key '%s' from cache", key)
                del self._entries[key]
        return len(expired)

    async def _expire_loop(self) -> None:
        logger.debug("starting cache expire loop")
        try:
            while True:
                try:
                    await self.sweep()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Cache sweep failed")
                await asyncio.sleep(self._interval)
        finally:
            logger.debug("ending cache expire loop")

    async def startup(self) -> None:
        logger.debug("starting memory cache ttl=%.3fs interval=%.3fs", self._ttl, self._interval)
        self._closed = False
        if not self.enabled or self.running:
            return
        self._expire_task = asyncio.create_task(self._expire_loop(), name="cache-expire-loop")

    async def shutdown(self) -> None:
        self._closed = True
        task, self._expire_task = self._expire_task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await self.clear()
