import asyncio
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from typing import Optional

from image_gateway.exceptions import ObjectNotFoundError
from image_gateway.types import StoredObject

from .base import BaseBlobStore


@dataclass
class _Blob:
    data: bytes
    content_type: str
    cache_control: Optional[str]
    last_modified: datetime


class MemoryBlobStore(BaseBlobStore):
    """In-memory object store for tests and local development."""

    def __init__(self) -> None:
        self.blobs: dict[str, _Blob] = {}
        self.lock = asyncio.Lock()

    async def get(self, key: str) -> bytes:
        async with self.lock:
            blob = self.blobs.get(key)
            if blob is None:
                raise ObjectNotFoundError(f"Object {key} not found")
            return blob.data

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        async with self.lock:
            self.blobs[key] = _Blob(
                data=bytes(data),
                content_type=content_type,
                cache_control=cache_control,
                last_modified=datetime.now(timezone.utc),
            )

    async def delete(self, key: str) -> None:
        async with self.lock:
            self.blobs.pop(key, None)

    async def list_objects(self) -> list[StoredObject]:
        async with self.lock:
            return [
                StoredObject(key=k, size=len(v.data), last_modified=v.last_modified)
                for k, v in sorted(self.blobs.items())
            ]
