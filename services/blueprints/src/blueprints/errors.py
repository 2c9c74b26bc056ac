"""Error taxonomy for the blueprint service and its HTTP translation."""

from __future__ import annotations

from typing import Any, Dict, Optional


class BlueprintError(Exception):
    """Base exception carrying the HTTP status it maps to."""

    status_code: int = 500

    def __init__(self, message: str, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationFailed(BlueprintError):
    """Client-caused failure; raised before any side effect."""

    status_code = 400


class MissingFileError(ValidationFailed):
    def __init__(self) -> None:
        super().__init__("No blueprint file provided.")


class EmptyFileError(ValidationFailed):
    def __init__(self) -> None:
        super().__init__("Blueprint file is empty.")


class UnsupportedMediaTypeError(ValidationFailed):
    def __init__(self, content_type: Optional[str]) -> None:
        super().__init__(
            f"Unsupported blueprint type: {content_type or 'unknown'}.",
            detail="Allowed types are PDF, PNG and JPEG.",
        )


class FileTooLargeError(ValidationFailed):
    status_code = 413

    def __init__(self, limit_bytes: int) -> None:
        limit_mib = limit_bytes // (1024 * 1024)
        super().__init__(f"Blueprint exceeds the {limit_mib} MiB upload limit.")


class MissingPromptError(ValidationFailed):
    def __init__(self) -> None:
        super().__init__("A processing prompt is required.")


class MissingSourceError(ValidationFailed):
    def __init__(self) -> None:
        super().__init__("Blueprint source could not be resolved.")


class BlueprintNotFoundError(BlueprintError):
    status_code = 404

    def __init__(self, blueprint_id: str) -> None:
        super().__init__("Blueprint not found.", detail={"id": blueprint_id})


class AnalysisServiceError(BlueprintError):
    """The downstream analysis call failed or reported an error payload."""


class StorageError(BlueprintError):
    """A write to the blob store failed."""


class DuplicateBlueprintError(BlueprintError):
    """An id was registered twice."""


def error_body(exc: BaseException, fallback_message: str) -> Dict[str, Any]:
    """Map any failure to the client-facing ``{message, error?}`` shape.

    ``message`` is the most specific text available: the service error's own
    message (for downstream failures, the message carried in the downstream
    error payload), then the exception's string form, then
    ``fallback_message``. ``error`` holds the structured detail when there is
    one, and is omitted otherwise.
    """

    if isinstance(exc, BlueprintError):
        message = exc.message or str(exc) or fallback_message
        detail = exc.detail
    else:
        message = str(exc) or fallback_message
        detail = None

    body: Dict[str, Any] = {"message": message}
    if detail not in (None, "", {}):
        body["error"] = detail
    return body


__all__ = [
    "AnalysisServiceError",
    "BlueprintError",
    "BlueprintNotFoundError",
    "DuplicateBlueprintError",
    "EmptyFileError",
    "FileTooLargeError",
    "MissingFileError",
    "MissingPromptError",
    "MissingSourceError",
    "StorageError",
    "UnsupportedMediaTypeError",
    "ValidationFailed",
    "error_body",
]
