"""Shared data models for the blueprint service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class IncomingFile:
    """An uploaded file as received from the multipart form."""

    stream: BinaryIO
    size: int
    filename: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BlueprintRecord:
    """An uploaded blueprint as held by the registry. Never mutated."""

    id: str
    source_location: str
    original_name: Optional[str] = None
    object_key: Optional[str] = None
    content_type: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class ProcessedBlueprint:
    """Reference to a persisted analysis result."""

    url: str
    object_key: str
    source_url: str


@dataclass(frozen=True, slots=True)
class HighlightPrompt:
    """Highlight a named structural element, optionally in a given color."""

    target: str
    color: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    type = "highlight"

    def fields(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, **self.extra, "target": self.target}
        if self.color is not None:
            payload["color"] = self.color
        return payload


@dataclass(frozen=True, slots=True)
class ScalePrompt:
    """Request a scale or measurement computation."""

    factor: float
    target: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    type = "scale"

    def fields(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, **self.extra, "factor": self.factor}
        if self.target is not None:
            payload["target"] = self.target
        return payload


@dataclass(frozen=True, slots=True)
class IsolatePrompt:
    """Extract a single structural element."""

    target: str
    extra: Mapping[str, Any] = field(default_factory=dict)

    type = "isolate"

    def fields(self) -> Dict[str, Any]:
        return {"type": self.type, **self.extra, "target": self.target}


@dataclass(frozen=True, slots=True)
class PassthroughPrompt:
    """Any prompt shape not recognised above; forwarded verbatim."""

    raw: Mapping[str, Any]

    def fields(self) -> Dict[str, Any]:
        return dict(self.raw)


Prompt = Union[HighlightPrompt, ScalePrompt, IsolatePrompt, PassthroughPrompt]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_prompt(raw: Any) -> Prompt:
    """Turn a caller-supplied prompt into its typed variant.

    Unknown types, or known types missing their required fields, become a
    :class:`PassthroughPrompt` so new downstream prompt shapes keep working.
    A non-object prompt is forwarded under a ``prompt`` key.
    """

    if not isinstance(raw, Mapping):
        return PassthroughPrompt({"prompt": raw})

    kind = raw.get("type")
    target = raw.get("target")

    if kind == "highlight" and isinstance(target, str):
        color = raw.get("color")
        if color is None or isinstance(color, str):
            extra = {k: v for k, v in raw.items() if k not in ("type", "target", "color")}
            return HighlightPrompt(target=target, color=color, extra=extra)
    if kind == "scale" and _is_number(raw.get("factor")) and (
        target is None or isinstance(target, str)
    ):
        extra = {k: v for k, v in raw.items() if k not in ("type", "factor", "target")}
        return ScalePrompt(
            factor=raw["factor"],
            target=target if isinstance(target, str) else None,
            extra=extra,
        )
    if kind == "isolate" and isinstance(target, str):
        extra = {k: v for k, v in raw.items() if k not in ("type", "target")}
        return IsolatePrompt(target=target, extra=extra)
    return PassthroughPrompt(dict(raw))


__all__ = [
    "BlueprintRecord",
    "HighlightPrompt",
    "IncomingFile",
    "IsolatePrompt",
    "PassthroughPrompt",
    "ProcessedBlueprint",
    "Prompt",
    "ScalePrompt",
    "parse_prompt",
]
