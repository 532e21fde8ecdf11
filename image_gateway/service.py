"""Upload, fetch and delete flows tying the store, converter and cache together."""

import asyncio
from dataclasses import dataclass
from logging import getLogger
from pathlib import PurePosixPath

from image_gateway.cache import ConversionCache
from image_gateway.converter import DEFAULT_QUALITY
from image_gateway.converter import convert_image
from image_gateway.converter import to_webp
from image_gateway.exceptions import PayloadTooLargeError
from image_gateway.exceptions import ValidationError
from image_gateway.storage import BaseBlobStore
from image_gateway.types import CacheKey
from image_gateway.types import ImageFormat
from image_gateway.types import StoredObject

UPLOAD_CACHE_CONTROL = "public, max-age=31536000"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

logger = getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    file_name: str
    original_name: str
    converted: bool
    original_size: int
    final_size: int

    @property
    def reduction(self) -> str:
        if self.original_size <= 0:
            return "0.00%"
        return f"{(1 - self.final_size / self.original_size) * 100:.2f}%"


@dataclass(frozen=True)
class FetchResult:
    content: bytes
    media_type: str
    cache_hit: bool


class ImageService:
    """Stores uploads as WebP and serves them in the requested format.

    Every write to the store is followed by an invalidation of the object's
    cached conversions; fetches read through the cache.
    """

    def __init__(
        self,
        store: BaseBlobStore,
        cache: ConversionCache,
        webp_quality: int = DEFAULT_QUALITY,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self.store = store
        self.cache = cache
        self.webp_quality = webp_quality
        self.max_upload_bytes = max_upload_bytes

    def _check_size(self, data: bytes) -> None:
        if len(data) > self.max_upload_bytes:
            raise PayloadTooLargeError(
                f"Upload exceeds the {self.max_upload_bytes} byte limit"
            )

    async def _store(
        self,
        original_name: str,
        final_name: str,
        original: bytes,
        final: bytes,
        converted: bool,
    ) -> UploadResult:
        await self.store.put(
            final_name,
            final,
            content_type=ImageFormat.WEBP.media_type,
            cache_control=UPLOAD_CACHE_CONTROL,
        )
        await self.cache.invalidate(final_name)
        logger.info(
            "Stored %s as %s (%d -> %d bytes)",
            original_name,
            final_name,
            len(original),
            len(final),
        )
        return UploadResult(
            file_name=final_name,
            original_name=original_name,
            converted=converted,
            original_size=len(original),
            final_size=len(final),
        )

    async def upload(self, filename: str, data: bytes) -> UploadResult:
        """Store an uploaded PNG, JPEG or WebP image as WebP.

        Raises:
            ValidationError: If the name is missing or has an unsupported extension
            PayloadTooLargeError: If the body exceeds ``max_upload_bytes``
            ConversionError: If a PNG/JPEG body cannot be re-encoded
        """
        if not filename:
            raise ValidationError("No image was provided")
        self._check_size(data)

        name = PurePosixPath(filename).name
        fmt = ImageFormat.from_filename(name)
        if fmt is None:
            raise ValidationError("Only PNG, JPG or WebP files are allowed")
        if fmt is ImageFormat.WEBP:
            return await self._store(filename, name, data, data, converted=False)

        final_name = f"{PurePosixPath(name).stem}.webp"
        webp = await asyncio.to_thread(to_webp, data, self.webp_quality)
        return await self._store(filename, final_name, data, webp, converted=True)

    async def upload_png(self, filename: str, data: bytes) -> UploadResult:
        """Store a raw PNG body, named by ``filename``, as WebP."""
        if not filename:
            raise ValidationError("fileName is required in the query or X-Filename header")
        if ImageFormat.from_filename(filename) is not ImageFormat.PNG:
            raise ValidationError("Only PNG files can be uploaded directly")
        return await self.upload(filename, data)

    async def fetch(self, key: str, fmt: ImageFormat) -> FetchResult:
        cache_key = CacheKey(key, fmt.value)
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return FetchResult(cached, fmt.media_type, cache_hit=True)

        data = await self.store.get(key)
        if ImageFormat.from_filename(key) is not fmt:
            data = await asyncio.to_thread(
                convert_image, data, fmt, quality=self.webp_quality
            )
        await self.cache.set(cache_key, data)
        return FetchResult(data, fmt.media_type, cache_hit=False)

    async def delete(self, key: str) -> None:
        await self.store.delete(key)
        await self.cache.invalidate(key)
        logger.info("Deleted %s", key)

    async def list_images(self) -> list[StoredObject]:
        return await self.store.list_objects()
