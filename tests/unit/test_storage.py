"""Tests for the MinIO and local blob stores."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from blueprints.errors import StorageError
from blueprints.storage import (
    CACHE_CONTROL,
    LocalBlobStore,
    MinioBlobStore,
    build_blob_store,
    new_object_key,
)


def test_new_object_key_is_namespaced_and_random():
    first = new_object_key("originals/", ".png")
    second = new_object_key("originals", ".png")
    assert first.startswith("originals/") and first.endswith(".png")
    assert first != second


@pytest.mark.asyncio
async def test_minio_put_sets_cache_and_content_type():
    client = MagicMock()
    store = MinioBlobStore(client, "plans", "https://spaces.example.test/")

    url = await store.put("processed/abc.json", b'{"a": 1}', "application/json")

    assert url == "https://spaces.example.test/plans/processed/abc.json"
    kwargs = client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "plans"
    assert kwargs["object_name"] == "processed/abc.json"
    assert kwargs["length"] == 8
    assert kwargs["content_type"] == "application/json"
    assert kwargs["metadata"]["Cache-Control"] == CACHE_CONTROL
    assert kwargs["part_size"] == 5 * 1024 * 1024


@pytest.mark.asyncio
async def test_minio_put_streams_file_objects():
    client = MagicMock()
    store = MinioBlobStore(client, "plans", "https://spaces.example.test")
    stream = io.BytesIO(b"x" * 100)

    await store.put("originals/a.png", stream, "image/png", length=100)

    kwargs = client.put_object.call_args.kwargs
    assert kwargs["data"] is stream
    assert kwargs["length"] == 100


@pytest.mark.asyncio
async def test_minio_failure_becomes_storage_error():
    client = MagicMock()
    client.put_object.side_effect = RuntimeError("connection reset")
    store = MinioBlobStore(client, "plans", "https://spaces.example.test")

    with pytest.raises(StorageError) as excinfo:
        await store.put("originals/a.png", b"data", "image/png")

    assert excinfo.value.message == "connection reset"


def test_minio_ensure_bucket_creates_missing_bucket():
    client = MagicMock()
    client.bucket_exists.return_value = False
    MinioBlobStore(client, "plans", "https://spaces.example.test").ensure_bucket()
    client.make_bucket.assert_called_once_with("plans")


@pytest.mark.asyncio
async def test_local_store_writes_and_returns_public_url(tmp_path: Path):
    store = LocalBlobStore(tmp_path / "blobs", "http://localhost:3000/storage/")

    url = await store.put("originals/a.png", io.BytesIO(b"png-bytes"), "image/png")

    assert url == "http://localhost:3000/storage/originals/a.png"
    assert (tmp_path / "blobs" / "originals" / "a.png").read_bytes() == b"png-bytes"
    leftovers = [p for p in (tmp_path / "blobs" / "originals").iterdir() if p.name.startswith(".upload-")]
    assert leftovers == []


@pytest.mark.asyncio
async def test_local_store_rejects_escaping_keys(tmp_path: Path):
    store = LocalBlobStore(tmp_path / "blobs", "http://localhost:3000/storage")

    with pytest.raises(StorageError):
        await store.put("../outside.json", b"{}", "application/json")

    assert not (tmp_path / "outside.json").exists()


@pytest.mark.asyncio
async def test_local_store_cleans_up_on_failed_write(tmp_path: Path):
    class BrokenStream(io.RawIOBase):
        def readinto(self, buffer):
            raise OSError("disk read failed")

    store = LocalBlobStore(tmp_path / "blobs", "http://localhost:3000/storage")

    with pytest.raises(StorageError):
        await store.put("originals/b.png", BrokenStream(), "image/png")

    assert list((tmp_path / "blobs" / "originals").iterdir()) == []


def test_build_blob_store_local(settings):
    assert isinstance(build_blob_store(settings), LocalBlobStore)
