"""Flat-file allowlist of moderator identifiers."""

import asyncio
import time
from collections.abc import Callable
from logging import getLogger
from pathlib import Path
from typing import Optional

DEFAULT_TTL = 86400
DEFAULT_RETRY_INTERVAL = 60

logger = getLogger(__name__)


def normalize(identifier: str) -> str:
    return identifier.strip().lower()


def parse_allowlist(text: str) -> frozenset[str]:
    """Parse newline-delimited identifiers, skipping blanks and ``#`` comments."""
    members = set()
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        members.add(normalize(line))
    return frozenset(members)


class AllowlistStore:
    """Case-insensitive membership set loaded from a text file.

    The set is replaced wholesale on reload and reloaded automatically once
    it is older than ``ttl`` seconds. An unreadable file never raises: the
    previously loaded set is kept and lookups retry the read after
    ``retry_interval`` seconds.
    """

    def __init__(
        self,
        path: Path,
        ttl: float = DEFAULT_TTL,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.ttl = ttl
        self.retry_interval = retry_interval
        self.lock = asyncio.Lock()
        self._clock = clock
        self._members: frozenset[str] = frozenset()
        self._next_load_at: Optional[float] = None

    def _is_stale(self) -> bool:
        return self._next_load_at is None or self._clock() >= self._next_load_at

    async def reload(self) -> frozenset[str]:
        async with self.lock:
            try:
                text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read allowlist %s: %s", self.path, e)
                self._next_load_at = self._clock() + self.retry_interval
                return self._members

            self._members = parse_allowlist(text)
            self._next_load_at = self._clock() + self.ttl
            logger.info("Loaded %d allowlist entries from %s", len(self._members), self.path)
            return self._members

    async def members(self) -> frozenset[str]:
        if self._is_stale():
            return await self.reload()
        return self._members

    async def is_member(self, identifier: str) -> bool:
        return normalize(identifier) in await self.members()
