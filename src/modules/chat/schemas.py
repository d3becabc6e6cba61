"""Pydantic v2 schemas for order chat endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    content: str = Field("", max_length=10000)
    attachment_file_ids: list[uuid.UUID] = Field(default_factory=list, max_length=20)


class ChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    is_open: bool
    opened_at: datetime
    closed_at: datetime | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    chat_id: uuid.UUID
    sender_user_id: uuid.UUID
    content: str
    attachment_file_ids: list[uuid.UUID] = []
    viewed_by_user_ids: list[uuid.UUID] = []
    created_at: datetime


class ChatOpenUpdate(BaseModel):
    is_open: bool
