"""Blob storage backed by MinIO or the local filesystem."""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union
from uuid import uuid4

from minio import Minio

from common.config import Settings
from common.logging import get_logger

from .errors import StorageError

LOGGER = get_logger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"
PART_SIZE = 5 * 1024 * 1024
PARALLEL_PARTS = 4

Payload = Union[bytes, BinaryIO]


def new_object_key(namespace: str, suffix: str = "") -> str:
    """Fresh random key under ``namespace``, e.g. ``originals/<uuid>.png``."""

    return f"{namespace.strip('/')}/{uuid4()}{suffix}"


class BlobStore(Protocol):
    async def put(
        self,
        key: str,
        data: Payload,
        content_type: str,
        length: Optional[int] = None,
    ) -> str:
        """Write ``data`` under ``key`` and return its public URL."""
        ...


class MinioBlobStore:
    """S3-compatible store. Large payloads go up as multipart uploads.

    The SDK aborts a failed multipart upload, so an error never leaves a
    partial object behind.
    """

    def __init__(self, client: Minio, bucket: str, public_base_url: str) -> None:
        self._client = client
        self._bucket = bucket
        self._public_base = public_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "MinioBlobStore":
        endpoint = settings.minio_endpoint.replace("http://", "").replace("https://", "")
        secure = settings.minio_endpoint.startswith("https")
        client = Minio(
            endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            region=settings.minio_region,
            secure=secure,
        )
        store = cls(client, settings.minio_bucket or "", settings.public_base_url)
        if settings.storage_ensure_bucket:
            store.ensure_bucket()
        return store

    def ensure_bucket(self) -> None:
        if not self._client.bucket_exists(self._bucket):
            self._client.make_bucket(self._bucket)
            LOGGER.info("Created bucket", bucket=self._bucket)

    def public_url(self, key: str) -> str:
        return f"{self._public_base}/{self._bucket}/{key}"

    async def put(
        self,
        key: str,
        data: Payload,
        content_type: str,
        length: Optional[int] = None,
    ) -> str:
        if isinstance(data, (bytes, bytearray)):
            length = len(data)
            stream: BinaryIO = BytesIO(data)
        else:
            stream = data
            if length is None:
                length = -1
        try:
            await asyncio.to_thread(
                self._client.put_object,
                bucket_name=self._bucket,
                object_name=key,
                data=stream,
                length=length,
                content_type=content_type,
                metadata={"Cache-Control": CACHE_CONTROL, "x-amz-acl": "public-read"},
                part_size=PART_SIZE,
                num_parallel_uploads=PARALLEL_PARTS,
            )
        except Exception as exc:
            raise StorageError(str(exc) or "Object storage write failed") from exc
        LOGGER.info("Stored object in MinIO", bucket=self._bucket, object_name=key)
        return self.public_url(key)


class LocalBlobStore:
    """Filesystem store for development; served by the app under ``/storage``.

    Objects are written to a temp file and renamed into place.
    """

    def __init__(self, root: Path, public_base_url: str) -> None:
        self._root = root
        self._public_base = public_base_url.rstrip("/")
        self._root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalBlobStore":
        return cls(Path(settings.storage_local_root), settings.public_base_url)

    @property
    def root(self) -> Path:
        return self._root

    def public_url(self, key: str) -> str:
        return f"{self._public_base}/{key}"

    def _write(self, key: str, data: Payload) -> Path:
        path = (self._root / key).resolve()
        if self._root.resolve() not in path.parents:
            raise StorageError(f"Invalid object key: {key}")
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as handle:
                if isinstance(data, (bytes, bytearray)):
                    handle.write(data)
                else:
                    shutil.copyfileobj(data, handle)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return path

    async def put(
        self,
        key: str,
        data: Payload,
        content_type: str,
        length: Optional[int] = None,
    ) -> str:
        try:
            path = await asyncio.to_thread(self._write, key, data)
        except StorageError:
            raise
        except OSError as exc:
            raise StorageError(str(exc) or "Local storage write failed") from exc
        LOGGER.info("Stored object locally", path=str(path), content_type=content_type)
        return self.public_url(key)


def build_blob_store(settings: Settings) -> Union[MinioBlobStore, LocalBlobStore]:
    if settings.storage_backend == "local":
        return LocalBlobStore.from_settings(settings)
    return MinioBlobStore.from_settings(settings)


__all__ = [
    "BlobStore",
    "CACHE_CONTROL",
    "LocalBlobStore",
    "MinioBlobStore",
    "build_blob_store",
    "new_object_key",
]
