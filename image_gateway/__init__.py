"""image-gateway: an image upload and conversion gateway with a TTL conversion cache."""

from .allowlist import AllowlistStore as AllowlistStore
from .app import create_app as create_app
from .cache import ConversionCache as ConversionCache
from .service import ImageService as ImageService
from .types import CacheKey as CacheKey
from .types import CacheStats as CacheStats
from .types import ImageFormat as ImageFormat

__all__ = [
    "AllowlistStore",
    "CacheKey",
    "CacheStats",
    "ConversionCache",
    "ImageFormat",
    "ImageService",
    "create_app",
]
