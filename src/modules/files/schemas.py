"""Pydantic v2 schemas for file endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import FileEntityType


class UploadUrlResponse(BaseModel):
    upload_url: str


class BlobStoredResponse(BaseModel):
    storage_id: str


class FileCreate(BaseModel):
    storage_id: str = Field(..., min_length=1, max_length=255)
    ui_name: str = Field(..., min_length=1, max_length=255)
    size_bytes: int = Field(..., ge=0)
    content_type: str | None = Field(None, max_length=100)
    entity_type: FileEntityType | None = None
    entity_id: uuid.UUID | None = None


class FileLinkRequest(BaseModel):
    file_ids: list[uuid.UUID] = Field(..., min_length=1)
    entity_type: FileEntityType
    entity_id: uuid.UUID


class FileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    storage_id: str
    ui_name: str
    size_bytes: int
    content_type: str | None = None
    uploaded_by_user_id: uuid.UUID
    entity_type: FileEntityType | None = None
    entity_id: uuid.UUID | None = None
    linked_at: datetime | None = None
    created_at: datetime


class FileUrlResponse(BaseModel):
    file_id: uuid.UUID
    url: str
