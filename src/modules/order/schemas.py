"""Pydantic v2 schemas for the order API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import OrderSla, OrderStatus

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class OrderCreate(BaseModel):
    team_id: uuid.UUID
    category_id: uuid.UUID
    sla: OrderSla
    cart_value_usd: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency_override: str | None = Field(None, min_length=3, max_length=3)
    merchant: str = Field(..., min_length=1, max_length=255)
    customer_name: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    contact: str | None = Field(None, max_length=255)
    pickup_address: str | None = None
    delivery_address: str | None = None
    time_window: str | None = Field(None, max_length=100)
    items_summary: str | None = None
    attachment_file_ids: list[uuid.UUID] = Field(default_factory=list)


class PassRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class HoldRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class FulfilmentSubmit(BaseModel):
    merchant_link: str = Field(..., min_length=1, max_length=2000)
    name_on_order: str = Field(..., min_length=1, max_length=255)
    final_value_usd: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    proof_file_ids: list[uuid.UUID] = Field(default_factory=list)


class AccessListUpdate(BaseModel):
    user_ids: list[uuid.UUID] = Field(default_factory=list, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderPassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    staff_user_id: uuid.UUID
    reason: str
    passed_at: datetime


class FulfilmentResponse(BaseModel):
    merchant_link: str
    name_on_order: str
    final_value_usd: Decimal
    proof_file_ids: list[uuid.UUID] = []


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    team_id: uuid.UUID
    created_by_user_id: uuid.UUID
    picked_by_staff_user_id: uuid.UUID | None = None
    category_id: uuid.UUID
    sla: OrderSla
    cart_value_usd: Decimal
    currency_override: str | None = None
    merchant: str
    customer_name: str
    country: str
    city: str
    contact: str | None = None
    pickup_address: str | None = None
    delivery_address: str | None = None
    time_window: str | None = None
    items_summary: str | None = None
    attachment_file_ids: list[uuid.UUID] = []
    status: OrderStatus
    accepted_at: datetime | None = None
    hold_reason: str | None = None
    auto_cancel_at: datetime | None = None
    fulfilment: FulfilmentResponse | None = None
    passes: list[OrderPassResponse] = Field(default=[], serialization_alias="passed_by")
    read_access_user_ids: list[uuid.UUID] = []
    write_access_user_ids: list[uuid.UUID] = []
    version: int
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    limit: int
    offset: int


class OrderAccessInfoResponse(BaseModel):
    order_id: uuid.UUID
    team_id: uuid.UUID
    created_by_user_id: uuid.UUID
    picked_by_staff_user_id: uuid.UUID | None = None
    read_access_user_ids: list[uuid.UUID]
    write_access_user_ids: list[uuid.UUID]
