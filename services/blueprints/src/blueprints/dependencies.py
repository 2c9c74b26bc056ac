"""Dependency wiring for the blueprint routes."""

from __future__ import annotations

from fastapi import Request

from common.config import Settings

from .service import BlueprintService


def get_blueprint_service(request: Request) -> BlueprintService:
    return request.app.state.blueprint_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = ["get_app_settings", "get_blueprint_service"]
