from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.config import Settings, get_settings
from common.http import pooled_client
from common.logging import configure_logging, get_logger

from .analysis import AnalysisClient
from .errors import BlueprintError, ValidationFailed, error_body
from .registry import BlueprintRegistry, InMemoryBlueprintRegistry
from .routes.blueprints import router as blueprints_router
from .service import BlueprintService
from .storage import BlobStore, LocalBlobStore, build_blob_store

LOGGER = get_logger(__name__)

FALLBACK_MESSAGES = {
    "/api/blueprints/upload": "Failed to upload blueprint.",
    "/api/blueprints/process": "Failed to process blueprint.",
}


def _fallback_message(request: Request) -> str:
    return FALLBACK_MESSAGES.get(request.url.path, "Request failed.")


async def blueprint_error_handler(request: Request, exc: BlueprintError) -> JSONResponse:
    body = error_body(exc, _fallback_message(request))
    if isinstance(exc, ValidationFailed):
        LOGGER.info("Rejected request", path=request.url.path, reason=body["message"])
    else:
        LOGGER.error(
            "Request failed",
            path=request.url.path,
            error=body["message"],
            detail=body.get("error"),
        )
    return JSONResponse(status_code=exc.status_code, content=body)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request body.", "error": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(exc, _fallback_message(request)))


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[BlobStore] = None,
    registry: Optional[BlueprintRegistry] = None,
    analysis_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the service. Configuration errors surface here, before serving."""

    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.is_production)

    store = store if store is not None else build_blob_store(settings)
    registry = registry if registry is not None else InMemoryBlueprintRegistry()
    http = pooled_client(
        timeout=settings.analysis_timeout_seconds,
        max_connections=settings.analysis_max_connections,
        transport=analysis_transport,
    )
    analysis = AnalysisClient(
        http, settings.analysis_base_url, timeout=settings.analysis_timeout_seconds
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info(
            "Blueprint service starting",
            environment=settings.environment,
            storage_backend=settings.storage_backend,
            analysis_base_url=settings.analysis_base_url,
        )
        yield
        await http.aclose()
        LOGGER.info("Blueprint service stopped")

    app = FastAPI(title="Blueprint Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.blueprint_service = BlueprintService(
        store=store, registry=registry, analysis=analysis, settings=settings
    )

    if not settings.is_production:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:5173", "http://localhost:4173"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(BlueprintError, blueprint_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(blueprints_router)

    @app.get("/healthz")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    if isinstance(store, LocalBlobStore):
        app.mount("/storage", StaticFiles(directory=store.root), name="storage")

    # Built frontend; mounted last so API routes take precedence.
    static_dir = Path(settings.static_dir)
    if settings.is_production and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="frontend")

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
