"""Pydantic v2 schemas for dispute endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import DisputeStatus


class DisputeCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=5000)
    attachment_file_ids: list[uuid.UUID] = Field(default_factory=list)


class DisputeApproveRequest(BaseModel):
    notes: str | None = Field(None, max_length=5000)


class DisputeDeclineRequest(BaseModel):
    notes: str = Field(..., min_length=1, max_length=5000)


class DisputePartialRefundRequest(BaseModel):
    adjustment_amount_usd: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(None, max_length=5000)


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    team_id: uuid.UUID
    raised_by_user_id: uuid.UUID
    reason: str
    attachment_file_ids: list[uuid.UUID] = []
    status: DisputeStatus
    resolution_notes: str | None = None
    adjustment_amount_usd: Decimal | None = None
    resolved_by_user_id: uuid.UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DisputeListResponse(BaseModel):
    items: list[DisputeResponse]
    total: int
    limit: int
    offset: int
