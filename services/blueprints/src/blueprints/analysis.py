"""Client for the external blueprint analysis service."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from common.logging import get_logger

from .errors import AnalysisServiceError

LOGGER = get_logger(__name__)

_MISSING = object()


def _decode(response: httpx.Response) -> Any:
    if not response.content or not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError:
        return _MISSING


def _error_message(payload: Any) -> Optional[str]:
    """Pull a human readable message out of a downstream error payload."""

    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, str) and error:
        return error
    if isinstance(error, dict):
        nested = error.get("message") or error.get("detail")
        if isinstance(nested, str) and nested:
            return nested
    for key in ("message", "detail"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    if error:
        return str(error)
    return None


class AnalysisClient:
    """Thin wrapper around ``POST {base_url}/process_blueprint``.

    The downstream service may report failures inside a 2xx response, so the
    body is inspected as well as the status code. Exactly one request is made
    per call.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float = 25.0) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/process_blueprint"

    async def process_blueprint(self, body: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(self.endpoint, json=body, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise AnalysisServiceError(
                f"Analysis service timed out after {self._timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise AnalysisServiceError(f"Analysis service request failed: {exc}") from exc

        payload = _decode(response)

        if response.is_error:
            detail = None if payload is _MISSING else payload
            message = _error_message(detail) or (
                f"Analysis service returned HTTP {response.status_code}"
            )
            LOGGER.warning(
                "Analysis service error status",
                status_code=response.status_code,
                detail=detail,
            )
            raise AnalysisServiceError(message, detail=detail)

        if payload is _MISSING:
            raise AnalysisServiceError("Analysis service returned a non-JSON response")
        if payload in (None, {}, []):
            raise AnalysisServiceError("Analysis service returned an empty response")
        # Only an absent or null ``error`` counts as success.
        if isinstance(payload, dict) and payload.get("error") is not None:
            LOGGER.warning("Analysis service embedded error", detail=payload)
            raise AnalysisServiceError(_error_message(payload) or "Analysis failed", detail=payload)

        return payload


__all__ = ["AnalysisClient"]
