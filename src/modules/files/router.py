"""Files API router — upload URLs, metadata, entity linkage and downloads."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.exceptions import ValidationException
from src.models.enums import FileEntityType
from src.modules.files.schemas import (
    BlobStoredResponse,
    FileCreate,
    FileLinkRequest,
    FileResponse,
    FileUrlResponse,
    UploadUrlResponse,
)
from src.modules.files.service import FileService
from src.modules.files.storage import BlobStore, get_blob_store
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal

router = APIRouter(prefix="/files", tags=["files"])


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


@router.post("/upload-url", response_model=UploadUrlResponse)
async def generate_upload_url(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Issue a one-off URL the client uploads blob bytes to."""
    return UploadUrlResponse(upload_url=FileService(db, blob_store).generate_upload_url())


@router.put("/blob", response_model=BlobStoredResponse)
async def put_blob(
    request: Request,
    upload_url: str = Query(..., min_length=1),
    principal: Principal = Depends(get_principal),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Store the raw request body at a previously issued upload URL."""
    data = await request.body()
    if not data:
        raise ValidationException("Upload body is empty")
    return BlobStoredResponse(storage_id=blob_store.put_blob(upload_url, data))


@router.post("/", response_model=FileResponse, status_code=201)
async def save_file(
    body: FileCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    record = await FileService(db, blob_store).save_file(
        principal,
        storage_id=body.storage_id,
        ui_name=body.ui_name,
        size_bytes=body.size_bytes,
        content_type=body.content_type,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
    )
    return FileResponse.model_validate(record)


# ---------------------------------------------------------------------------
# Linkage / read
# ---------------------------------------------------------------------------


@router.post("/link", response_model=list[FileResponse])
async def link_files(
    body: FileLinkRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    records = await FileService(db, blob_store).link_files(
        principal, body.file_ids, body.entity_type, body.entity_id
    )
    return [FileResponse.model_validate(r) for r in records]


@router.get("/", response_model=list[FileResponse])
async def list_files(
    entity_type: FileEntityType = Query(...),
    entity_id: uuid.UUID = Query(...),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    records = await FileService(db, blob_store).list_files_for_entity(
        principal, entity_type, entity_id
    )
    return [FileResponse.model_validate(r) for r in records]


@router.get("/{file_id}/url", response_model=FileUrlResponse)
async def get_file_url(
    file_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    url = await FileService(db, blob_store).get_file_url(principal, file_id)
    return FileUrlResponse(file_id=file_id, url=url)


@router.delete("/{file_id}", status_code=204)
async def delete_file(
    file_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    await FileService(db, blob_store).delete_file(principal, file_id)
