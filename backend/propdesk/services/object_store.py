"""
PropDesk Backend — Object Store Adapter
=========================================

What:  Stores uploaded image blobs under partitioned keys and returns public URLs.
Why:   Keeps every object-store detail (client lifecycle, ACLs, URL templates)
       behind one small interface the PropertyService can call.
How:   ObjectStore defines the contract; S3ObjectStore writes through an
       aioboto3 client opened once at startup, LocalObjectStore writes to disk
       with aiofiles for development and tests.
Who:   Created by the lifespan handler, injected into PropertyService.

Key Layout:
    {ownerId}/{propertyId}/images/{epochMillis}-{index}{ext}

    ownerId / propertyId: namespace isolation per owner and per property
    epochMillis:          time discriminator, taken per file
    index:                position of the file in the request; two files that
                          share a millisecond still get distinct keys
    ext:                  original filename extension, case preserved

Public URL:
    {publicBase}/{key}           when a public/CDN base is configured
    backend default template     otherwise (S3 virtual-hosted URL, or
                                 {PUBLIC_BASE_URL}/api/files/{key} for local)
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

import aioboto3
import aiofiles
from botocore.exceptions import BotoCoreError, ClientError

from propdesk.config import Settings
from propdesk.exceptions import ObjectStorageError, ValidationError
from propdesk.schemas.property import ImageRecord

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """An uploaded file already read into memory by the route handler."""
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def build_image_key(
    owner_id: str,
    property_id: str,
    filename: str,
    index: int,
    timestamp_ms: Optional[int] = None,
) -> str:
    """Builds "{owner}/{property}/images/{ms}-{index}{ext}"."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    ext = os.path.splitext(filename or "")[1]
    return f"{owner_id}/{property_id}/images/{timestamp_ms}-{index}{ext}"


class ObjectStore(ABC):
    """
    Blob store contract used by PropertyService.

    Subclasses implement _write(), default_url() and health_check();
    key construction, URL selection and batch sequencing live here so every
    backend lays keys out identically.
    """

    def __init__(self, public_base: Optional[str] = None):
        self.public_base = public_base.rstrip("/") if public_base else None

    async def start(self) -> None:
        """Open long-lived resources. Called once from the lifespan."""

    async def close(self) -> None:
        """Release long-lived resources. Called once on shutdown."""

    @abstractmethod
    async def _write(self, key: str, content: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    def default_url(self, key: str) -> str:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    def public_url(self, key: str) -> str:
        if self.public_base:
            return f"{self.public_base}/{quote(key, safe='/')}"
        return self.default_url(key)

    async def put(
        self,
        owner_id: str,
        property_id: str,
        filename: str,
        content: bytes,
        content_type: str,
        index: int = 0,
    ) -> Tuple[str, str]:
        """
        Store one blob under a partitioned key.

        Returns:
            Tuple of (key, public_url).

        Raises:
            ObjectStorageError if the backing store rejects the write.
        """
        key = build_image_key(owner_id, property_id, filename, index)
        await self._write(key, content, content_type)
        logger.info("Object stored: %s (%d bytes, %s)", key, len(content), content_type)
        return key, self.public_url(key)

    async def upload_batch(
        self,
        owner_id: str,
        property_id: str,
        files: Sequence[UploadedFile],
    ) -> List[ImageRecord]:
        """
        Upload files one after another, preserving submission order.

        No rollback: if file N fails, files 0..N-1 stay in the store and the
        error propagates. The orphaned keys are logged so they can be found.
        """
        images: List[ImageRecord] = []
        for index, upload in enumerate(files):
            try:
                key, url = await self.put(
                    owner_id,
                    property_id,
                    upload.filename,
                    upload.content,
                    upload.content_type,
                    index=index,
                )
            except ObjectStorageError:
                if images:
                    logger.warning(
                        "Upload batch for property %s failed at file %d; orphaned keys: %s",
                        property_id,
                        index,
                        [image.key for image in images],
                    )
                raise
            images.append(
                ImageRecord(
                    key=key,
                    url=url,
                    content_type=upload.content_type,
                    size=upload.size,
                )
            )
        return images


class S3ObjectStore(ObjectStore):
    """
    S3 (or S3-compatible) backend.

    The aioboto3 client is an async context manager; start() enters it on an
    AsyncExitStack so one client (and its connection pool) serves every request.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        public_base: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_read: bool = True,
        session: Optional[aioboto3.Session] = None,
    ):
        super().__init__(public_base=public_base)
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_read = public_read
        self._session = session or aioboto3.Session()
        self._exit_stack = AsyncExitStack()
        self._client = None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = await self._exit_stack.enter_async_context(
            self._session.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
            )
        )
        logger.info("S3 client ready: bucket=%s region=%s", self.bucket, self.region)

    async def close(self) -> None:
        await self._exit_stack.aclose()
        self._client = None

    async def _write(self, key: str, content: bytes, content_type: str) -> None:
        if self._client is None:
            raise ObjectStorageError(
                message="Image storage is not available. Please try again later.",
                context={"reason": "client_not_started"},
            )

        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": content,
            "ContentType": content_type,
        }
        if self.public_read:
            params["ACL"] = "public-read"

        try:
            await self._client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 put_object failed for %s: %s", key, str(e))
            raise ObjectStorageError(
                context={"bucket": self.bucket, "key": key, "error": str(e)},
            ) from e

    def default_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{quote(key, safe='/')}"

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.head_bucket(Bucket=self.bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("S3 health check failed: %s", str(e))
            return False


class LocalObjectStore(ObjectStore):
    """
    Filesystem backend for development and tests.

    Files land at {storage_root}/{key} and are served back by
    GET /api/files/{key}. Keys that would resolve outside the root
    (an owner id such as "../x") are rejected.
    """

    def __init__(
        self,
        storage_root: str,
        public_base_url: str,
        public_base: Optional[str] = None,
    ):
        super().__init__(public_base=public_base)
        self.storage_root = Path(storage_root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    async def start(self) -> None:
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("Local object store at %s", self.storage_root)

    def resolve_path(self, key: str) -> Path:
        path = (self.storage_root / key).resolve()
        if self.storage_root not in path.parents:
            raise ValidationError(
                message="Invalid storage key",
                field="key",
                context={"key": key},
            )
        return path

    async def _write(self, key: str, content: bytes, content_type: str) -> None:
        path = self.resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise ObjectStorageError(
                context={"path": str(path), "os_error": str(e)},
            ) from e

    def default_url(self, key: str) -> str:
        return f"{self.public_base_url}/api/files/{quote(key, safe='/')}"

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)


def create_object_store(config: Settings) -> ObjectStore:
    """Build the backend selected by STORAGE_BACKEND."""
    if config.storage_backend == "local":
        return LocalObjectStore(
            storage_root=config.storage_root,
            public_base_url=config.public_base_url,
            public_base=config.s3_public_base,
        )
    return S3ObjectStore(
        bucket=config.s3_bucket,
        region=config.aws_region,
        public_base=config.s3_public_base,
        endpoint_url=config.s3_endpoint_url,
        public_read=config.s3_public_read,
    )
