"""Shared fixtures for blueprint service unit tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[2]
for src in (ROOT / "services" / "common" / "src", ROOT / "services" / "blueprints" / "src"):
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

from common.config import Settings  # noqa: E402
from blueprints.errors import StorageError  # noqa: E402

PUBLIC_BASE = "https://cdn.example.test/blueprints"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "analysis_base_url": "http://analysis.test",
        "storage_backend": "local",
        "storage_local_root": str(tmp_path / "storage"),
        "storage_public_base_url": "http://testserver/storage",
        "storage_retry_wait_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class SpyStore:
    """In-memory blob store that records every write."""

    def __init__(self, failures: int = 0) -> None:
        self.objects: Dict[str, bytes] = {}
        self.calls: List[dict] = []
        self.failures = failures

    async def put(self, key, data, content_type, length=None) -> str:
        self.calls.append({"key": key, "content_type": content_type, "length": length})
        if self.failures:
            self.failures -= 1
            raise StorageError("bucket unavailable")
        payload = data if isinstance(data, (bytes, bytearray)) else data.read()
        self.objects[key] = bytes(payload)
        return f"{PUBLIC_BASE}/{key}"


class AnalysisStub:
    """Records requests sent to the analysis service and replies with a canned response."""

    def __init__(
        self,
        json_body: Optional[object] = None,
        status_code: int = 200,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        self.requests: List[httpx.Request] = []
        self.json_body = {"geometry": {"lines": [[0, 0, 10, 0]]}} if json_body is None else json_body
        self.status_code = status_code
        self.handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        return httpx.Response(self.status_code, json=self.json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def spy_store() -> SpyStore:
    return SpyStore()


@pytest.fixture
def analysis_stub() -> AnalysisStub:
    return AnalysisStub()


@pytest.fixture
def png_bytes() -> bytes:
    header = b"\x89PNG\r\n\x1a\n"
    return header + b"\x00" * (10 * 1024 - len(header))


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    return lambda **overrides: make_settings(tmp_path, **overrides)


@pytest.fixture
def build_client(settings, spy_store, analysis_stub):
    """Return a factory for a TestClient wired to the spy store and analysis stub."""

    from fastapi.testclient import TestClient

    from blueprints.app import create_app

    def _build(app_settings: Optional[Settings] = None, store=None) -> TestClient:
        app = create_app(
            app_settings or settings,
            store=spy_store if store is None else store,
            analysis_transport=analysis_stub.transport,
        )
        return TestClient(app)

    return _build
