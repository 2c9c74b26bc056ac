"""Upload and processing orchestration for blueprints."""

from __future__ import annotations

import json
from pathlib import PurePath
from typing import Any, Optional, Tuple
from uuid import uuid4

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from common.config import Settings
from common.logging import get_logger

from .analysis import AnalysisClient
from .composer import compose, processing_defaults
from .errors import (
    EmptyFileError,
    FileTooLargeError,
    MissingFileError,
    MissingPromptError,
    MissingSourceError,
    StorageError,
    UnsupportedMediaTypeError,
)
from .models import BlueprintRecord, IncomingFile, ProcessedBlueprint, parse_prompt
from .registry import BlueprintRegistry
from .storage import BlobStore, new_object_key

LOGGER = get_logger(__name__)

ORIGINALS_PREFIX = "originals"
PROCESSED_PREFIX = "processed"

# Allowed upload types and the extension used when the filename has none.
ALLOWED_TYPES = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
}


def normalize_content_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value.split(";", 1)[0].strip().lower() or None


class BlueprintService:
    """Stores uploads, resolves sources and runs analysis requests."""

    def __init__(
        self,
        *,
        store: BlobStore,
        registry: BlueprintRegistry,
        analysis: AnalysisClient,
        settings: Settings,
    ) -> None:
        self._store = store
        self._registry = registry
        self._analysis = analysis
        self._settings = settings

    def validate_upload(self, upload: Optional[IncomingFile]) -> Tuple[IncomingFile, str]:
        """Check an upload before any I/O and return it with its normalised type."""

        if upload is None:
            raise MissingFileError()
        content_type = normalize_content_type(upload.content_type)
        if content_type not in ALLOWED_TYPES:
            raise UnsupportedMediaTypeError(upload.content_type)
        if upload.size > self._settings.max_upload_bytes:
            raise FileTooLargeError(self._settings.max_upload_bytes)
        if upload.size <= 0:
            raise EmptyFileError()
        return upload, content_type

    async def upload(self, upload: Optional[IncomingFile]) -> BlueprintRecord:
        upload, content_type = self.validate_upload(upload)

        suffix = PurePath(upload.filename or "").suffix.lower() or ALLOWED_TYPES[content_type]
        object_key = new_object_key(ORIGINALS_PREFIX, suffix)
        url = await self._store.put(object_key, upload.stream, content_type, length=upload.size)

        # Registered only once the bytes are durable.
        record = BlueprintRecord(
            id=str(uuid4()),
            source_location=url,
            original_name=upload.filename,
            object_key=object_key,
            content_type=content_type,
        )
        self._registry.put(record)
        LOGGER.info(
            "Blueprint uploaded",
            blueprint_id=record.id,
            object_key=object_key,
            original_name=upload.filename,
            size=upload.size,
        )
        return record

    def get(self, blueprint_id: str) -> Optional[BlueprintRecord]:
        return self._registry.get(blueprint_id)

    def resolve_source(self, blueprint_id: Optional[str], original_url: Optional[str]) -> str:
        """An explicit URL wins over a registered id."""

        if original_url and original_url.strip():
            return original_url.strip()
        if blueprint_id:
            record = self._registry.get(blueprint_id)
            if record is not None:
                return record.source_location
        raise MissingSourceError()

    async def process(
        self,
        *,
        prompt: Any,
        blueprint_id: Optional[str] = None,
        original_url: Optional[str] = None,
    ) -> ProcessedBlueprint:
        if prompt is None:
            raise MissingPromptError()
        source_url = self.resolve_source(blueprint_id, original_url)

        parsed = parse_prompt(prompt)
        body = compose(processing_defaults(self._settings, source_url), parsed)
        LOGGER.info(
            "Calling analysis service",
            blueprint_id=blueprint_id,
            source_url=source_url,
            prompt_type=body.get("type"),
        )
        payload = await self._analysis.process_blueprint(body)

        object_key = new_object_key(PROCESSED_PREFIX, ".json")
        encoded = json.dumps(payload).encode("utf-8")
        try:
            url = await self._store_result(object_key, encoded)
        except StorageError as exc:
            LOGGER.error(
                "Analysis result lost after storage failure",
                blueprint_id=blueprint_id,
                object_key=object_key,
                error=exc.message,
            )
            raise

        LOGGER.info("Blueprint processed", blueprint_id=blueprint_id, object_key=object_key)
        return ProcessedBlueprint(url=url, object_key=object_key, source_url=source_url)

    async def _store_result(self, object_key: str, encoded: bytes) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.storage_write_attempts),
            wait=wait_exponential(multiplier=self._settings.storage_retry_wait_seconds, max=5),
            retry=retry_if_exception_type(StorageError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    LOGGER.warning(
                        "Retrying result write",
                        object_key=object_key,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self._store.put(object_key, encoded, "application/json")
        raise StorageError("Result write was not attempted")


__all__ = ["ALLOWED_TYPES", "BlueprintService", "normalize_content_type"]
