"""S3-compatible object store (Cloudflare R2 in production)."""

import asyncio
from logging import getLogger
from typing import Any
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from image_gateway.exceptions import ObjectNotFoundError
from image_gateway.exceptions import StorageError
from image_gateway.types import StoredObject

from .base import BaseBlobStore

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}

logger = getLogger(__name__)


class S3BlobStore(BaseBlobStore):
    """Object store on top of a boto3 S3 client.

    boto3 is blocking, so every call runs in a worker thread.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_credentials(
        cls,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        region_name: str = "auto",
    ) -> "S3BlobStore":
        client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region_name,
        )
        logger.info("Using S3 bucket <%s> at %s", bucket, endpoint_url)
        return cls(client, bucket)

    async def get(self, key: str) -> bytes:
        def _get() -> bytes:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object {key} not found") from e
            raise StorageError(f"Failed to get {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to get {key}: {e}") from e

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if cache_control is not None:
            params["CacheControl"] = cache_control

        try:
            await asyncio.to_thread(self.client.put_object, **params)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to put {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.delete_object, Bucket=self.bucket, Key=key
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

    async def list_objects(self) -> list[StoredObject]:
        def _list() -> list[StoredObject]:
            paginator = self.client.get_paginator("list_objects_v2")
            return [
                StoredObject(
                    key=item["Key"],
                    size=item.get("Size", 0),
                    last_modified=item.get("LastModified"),
                )
                for page in paginator.paginate(Bucket=self.bucket)
                for item in page.get("Contents", [])
            ]

        try:
            return await asyncio.to_thread(_list)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list {self.bucket}: {e}") from e
