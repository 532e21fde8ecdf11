"""Type definitions and type aliases for image-gateway."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple
from typing import Optional


class ImageFormat(str, Enum):
    """Image encodings the gateway can store and serve."""

    PNG = "png"
    WEBP = "webp"
    JPEG = "jpeg"

    @property
    def media_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pillow_name(self) -> str:
        return self.value.upper()

    @classmethod
    def from_name(cls, name: str) -> Optional["ImageFormat"]:
        """Look up a format by name, accepting ``jpg`` for JPEG."""
        name = name.lower()
        if name == "jpg":
            return cls.JPEG
        try:
            return cls(name)
        except ValueError:
            return None

    @classmethod
    def from_filename(cls, filename: str) -> Optional["ImageFormat"]:
        """Derive the format from a file name's extension, if it has a known one."""
        _, dot, extension = filename.rpartition(".")
        if not dot:
            return None
        return cls.from_name(extension)


class CacheKey(NamedTuple):
    """Composite cache key: stored object identifier plus target format."""

    object_id: str
    fmt: str


@dataclass
class CacheItem:
    """Cached conversion with its creation and expiry times.

    Args:
        value: The converted bytes
        created_at: Clock reading when the item was stored
        expires_at: Clock reading from which the item is no longer served
    """

    value: bytes
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the conversion cache counters."""

    keys: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


@dataclass(frozen=True)
class StoredObject:
    """An object as reported by a blob store listing."""

    key: str
    size: int
    last_modified: Optional[datetime] = None
