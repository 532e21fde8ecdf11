from abc import ABC
from abc import abstractmethod
from typing import Optional

from image_gateway.types import StoredObject


class BaseBlobStore(ABC):
    """Base class for all object stores."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Retrieve an object's bytes.

        Raises:
            ObjectNotFoundError: If no object is stored under ``key``
        """

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        """Store an object, replacing any existing one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove an object. Deleting a missing key is not an error."""

    @abstractmethod
    async def list_objects(self) -> list[StoredObject]:
        """List every stored object."""
