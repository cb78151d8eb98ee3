"""S3-compatible blob store on top of the minio client.

The minio SDK is synchronous; every call runs in a worker thread so the event
loop keeps serving while a blob is in flight. Failures are raised as
ExternalServiceError and never retried here.
"""
from __future__ import annotations

import asyncio
import io
import logging
from typing import TYPE_CHECKING, Optional

from minio import Minio
from minio.error import S3Error

from storefront.core.exceptions import ExternalServiceError
from storefront.intake.ports import BaseBlobStore

if TYPE_CHECKING:
    from storefront.config import StorageConfig

logger = logging.getLogger(__name__)


class S3BlobStore(BaseBlobStore):
    """Writes blobs to one bucket and hands back their public URL."""

    def __init__(self, config: Optional["StorageConfig"] = None, *, client: Optional[Minio] = None) -> None:
        if config is None:
            from storefront.config import load_storage_config
            config = load_storage_config()
        self._config = config
        self._client = client or Minio(
            config.host,
            access_key=config.access_key,
            secret_key=config.secret_key,
            secure=config.secure,
            region=config.region,
        )
        logger.info("S3BlobStore initialised endpoint=%s bucket=%s", config.host, config.bucket)

    @property
    def bucket(self) -> str:
        return self._config.bucket

    async def ensure_bucket(self) -> bool:
        """Create the bucket when missing. Returns True if it was created."""
        try:
            exists = await asyncio.to_thread(self._client.bucket_exists, self.bucket)
            if exists:
                return False
            await asyncio.to_thread(self._client.make_bucket, self.bucket)
        except (S3Error, OSError) as exc:
            raise ExternalServiceError(
                f"Failed to prepare bucket '{self.bucket}': {exc}",
                details={"bucket": self.bucket},
                cause=exc,
            ) from exc
        logger.info("Created bucket %s", self.bucket)
        return True

    async def put(self, data: bytes, name: str, content_type: str) -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                self.bucket,
                name,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except (S3Error, OSError) as exc:
            raise ExternalServiceError(
                f"Failed to store blob '{name}': {exc}",
                details={"blob": name},
                cause=exc,
            ) from exc
        logger.debug("put blob=%s bytes=%d", name, len(data))
        return self._config.object_url(name)

    async def delete(self, name: str) -> None:
        try:
            await asyncio.to_thread(self._client.remove_object, self.bucket, name)
        except (S3Error, OSError) as exc:
            raise ExternalServiceError(
                f"Failed to delete blob '{name}': {exc}",
                details={"blob": name},
                cause=exc,
            ) from exc
        logger.debug("deleted blob=%s", name)
