"""Build the request body sent to the analysis service."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from common.config import Settings

from .models import Prompt


def processing_defaults(settings: Settings, source_url: str) -> Dict[str, Any]:
    """Orchestrator-owned fields sent with every analysis request."""

    return {
        "mode": settings.processing_mode,
        "inputType": settings.processing_input_type,
        "image_url": source_url,
        "progressive": settings.processing_progressive,
        "want": settings.processing_want,
    }


def compose(defaults: Mapping[str, Any], prompt: Prompt) -> Dict[str, Any]:
    """Overlay the prompt's fields on the defaults.

    Prompt fields win on key collision. Keys the defaults don't know about are
    passed through untouched.
    """

    body = dict(defaults)
    body.update(prompt.fields())
    return body


__all__ = ["compose", "processing_defaults"]
