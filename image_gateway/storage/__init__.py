"""Object store implementations for image-gateway."""

from .base import BaseBlobStore
from .memory import MemoryBlobStore
from .s3 import S3BlobStore

__all__ = [
    "BaseBlobStore",
    "MemoryBlobStore",
    "S3BlobStore",
]
