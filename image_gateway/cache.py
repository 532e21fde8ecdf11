"""In-memory, TTL-expiring cache of image conversions."""

import asyncio
import contextlib
import time
from collections.abc import Callable
from logging import getLogger
from typing import Optional

from image_gateway.types import CacheItem
from image_gateway.types import CacheKey
from image_gateway.types import CacheStats

DEFAULT_TTL = 2700
DEFAULT_CLEANUP_INTERVAL = 300

logger = getLogger(__name__)


class ConversionCache:
    """Memoizes ``(object id, target format) -> converted bytes``.

    Entries are grouped by object id so that a mutation of the underlying
    object drops every derived format at once. Expired entries are purged
    lazily when read; ``start_cleanup`` additionally sweeps them on a timer.

    All state, counters included, sits behind one lock and no operation
    awaits while holding it.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self.cache: dict[str, dict[str, CacheItem]] = {}
        self.lock = asyncio.Lock()
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._cleanup_task: Optional[asyncio.Task] = None

    async def get(self, key: CacheKey) -> Optional[bytes]:
        object_id, fmt = key
        async with self.lock:
            formats = self.cache.get(object_id)
            cached_item = formats.get(fmt) if formats else None
            if cached_item is None:
                self._misses += 1
                return None
            if cached_item.is_expired(self._clock()):
                del formats[fmt]
                if not formats:
                    del self.cache[object_id]
                self._misses += 1
                return None
            self._hits += 1
            return cached_item.value

    async def set(
        self, key: CacheKey, value: bytes, ttl: Optional[float] = None
    ) -> None:
        object_id, fmt = key
        if not object_id or not fmt:
            raise ValueError("cache key components must be non-empty")
        if value is None:
            raise ValueError("cannot cache None")
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        async with self.lock:
            now = self._clock()
            self.cache.setdefault(object_id, {})[fmt] = CacheItem(
                value=bytes(value), created_at=now, expires_at=now + ttl
            )

    async def invalidate(self, object_id: str) -> int:
        """Drop every cached format of ``object_id``.

        Returns:
            The number of entries removed
        """
        async with self.lock:
            removed = self.cache.pop(object_id, {})
        if removed:
            logger.debug(
                "Invalidated %d cached format(s) of %s", len(removed), object_id
            )
        return len(removed)

    async def clear(self) -> None:
        async with self.lock:
            self.cache.clear()

    async def stats(self) -> CacheStats:
        """Return counters and the number of unexpired entries."""
        async with self.lock:
            now = self._clock()
            keys = sum(
                1
                for formats in self.cache.values()
                for item in formats.values()
                if not item.is_expired(now)
            )
            return CacheStats(keys=keys, hits=self._hits, misses=self._misses)

    async def cleanup(self) -> int:
        async with self.lock:
            now = self._clock()
            purged = 0
            for object_id in list(self.cache):
                formats = self.cache[object_id]
                for fmt in [f for f, item in formats.items() if item.is_expired(now)]:
                    del formats[fmt]
                    purged += 1
                if not formats:
                    del self.cache[object_id]
        if purged:
            logger.debug("Purged %d expired conversion(s)", purged)
        return purged

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                await self.cleanup()
            except Exception:
                logger.exception("Conversion cache sweep failed")

    def start_cleanup(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(
                self._cleanup_loop()
            )

    async def stop_cleanup(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
