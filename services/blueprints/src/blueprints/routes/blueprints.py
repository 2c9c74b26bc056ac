"""Blueprint upload and processing API."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from starlette.datastructures import UploadFile

from common.config import Settings

from ..dependencies import get_app_settings, get_blueprint_service
from ..errors import BlueprintNotFoundError, FileTooLargeError
from ..models import IncomingFile
from ..service import BlueprintService

router = APIRouter(prefix="/api/blueprints", tags=["blueprints"])

UPLOAD_FIELD = "blueprint"


class UploadResponse(BaseModel):
    id: str
    url: str
    message: str = "Blueprint uploaded successfully."


class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blueprint_id: Optional[str] = Field(
        default=None,
        alias="blueprintId",
        validation_alias=AliasChoices("blueprintId", "blueprint_id"),
    )
    original_url: Optional[str] = Field(
        default=None,
        alias="originalUrl",
        validation_alias=AliasChoices("originalUrl", "original_url"),
    )
    prompt: Optional[Any] = None


class ProcessResponse(BaseModel):
    url: str
    message: str = "Blueprint processed successfully."


class BlueprintInfo(BaseModel):
    id: str
    url: str
    name: Optional[str] = None


def _file_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def _declared_length(request: Request) -> Optional[int]:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_blueprint(
    request: Request,
    service: BlueprintService = Depends(get_blueprint_service),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    # Refuse bodies that cannot fit before spooling them to disk.
    declared = _declared_length(request)
    if declared is not None and declared > settings.max_upload_bytes + settings.max_field_bytes:
        raise FileTooLargeError(settings.max_upload_bytes)

    async with request.form(max_files=1, max_part_size=settings.max_field_bytes) as form:
        field = form.get(UPLOAD_FIELD)
        incoming: Optional[IncomingFile] = None
        if isinstance(field, UploadFile):
            size = _file_size(field)
            field.file.seek(0)
            incoming = IncomingFile(
                stream=field.file,
                size=size,
                filename=field.filename,
                content_type=field.content_type,
            )
        record = await service.upload(incoming)
    return UploadResponse(id=record.id, url=record.source_location)


@router.post("/process", response_model=ProcessResponse)
async def process_blueprint(
    body: ProcessRequest,
    service: BlueprintService = Depends(get_blueprint_service),
) -> ProcessResponse:
    result = await service.process(
        prompt=body.prompt,
        blueprint_id=body.blueprint_id,
        original_url=body.original_url,
    )
    return ProcessResponse(url=result.url)


@router.get("/{blueprint_id}", response_model=BlueprintInfo)
async def get_blueprint(
    blueprint_id: str,
    service: BlueprintService = Depends(get_blueprint_service),
) -> BlueprintInfo:
    record = service.get(blueprint_id)
    if record is None:
        raise BlueprintNotFoundError(blueprint_id)
    return BlueprintInfo(id=record.id, url=record.source_location, name=record.original_name)
