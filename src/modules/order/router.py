"""Order API router — creation, queue listings, lifecycle transitions and access lists."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import OrderStatus
from src.modules.audit.schemas import AuditLogResponse
from src.modules.audit.service import AuditService
from src.modules.files.storage import BlobStore, get_blob_store
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal
from src.modules.order.access_service import OrderAccessService
from src.modules.order.schemas import (
    AccessListUpdate,
    FulfilmentSubmit,
    HoldRequest,
    OrderAccessInfoResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    PassRequest,
)
from src.modules.order.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def _list_response(items, total: int, limit: int, offset: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in items],
        total=total,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Create / Read
# ---------------------------------------------------------------------------


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    body: OrderCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Submit a new order on behalf of one of the caller's teams."""
    svc = OrderService(db, blob_store)
    order = await svc.create_order(principal, body)
    return OrderResponse.model_validate(order)


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Every order the caller can see, newest first."""
    items, total = await OrderService(db).list_orders_for_viewer(principal, limit, offset)
    return _list_response(items, total, limit, offset)


@router.get("/all", response_model=OrderListResponse)
async def list_all_orders(
    team_id: uuid.UUID | None = Query(None),
    status: OrderStatus | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Owner view across all teams."""
    items, total = await OrderService(db).list_orders_for_owner(
        principal,
        team_id=team_id,
        status=status,
        category_id=category_id,
        limit=limit,
        offset=offset,
    )
    return _list_response(items, total, limit, offset)


@router.get("/team/{team_id}", response_model=OrderListResponse)
async def list_team_orders(
    team_id: uuid.UUID,
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    items, total = await OrderService(db).list_orders_for_reseller(
        principal, team_id, status=status, limit=limit, offset=offset
    )
    return _list_response(items, total, limit, offset)


@router.get("/queue", response_model=OrderListResponse)
async def staff_queue(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Unpicked orders awaiting a staff member."""
    items, total = await OrderService(db).staff_queue(principal, limit, offset)
    return _list_response(items, total, limit, offset)


@router.get("/my-work", response_model=OrderListResponse)
async def list_my_work(
    status: OrderStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    items, total = await OrderService(db).list_my_work(
        principal, status=status, limit=limit, offset=offset
    )
    return _list_response(items, total, limit, offset)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).get_order(order_id, principal)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/history", response_model=list[AuditLogResponse])
async def get_order_history(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail of one order, oldest first."""
    await OrderService(db).get_order(order_id, principal)
    entries = await AuditService(db).list_for_order(order_id)
    return [AuditLogResponse.model_validate(e) for e in entries]


# ---------------------------------------------------------------------------
# Staff transitions
# ---------------------------------------------------------------------------


@router.post("/{order_id}/pick", response_model=OrderResponse)
async def pick_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).pick_order(order_id, principal)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/pass", response_model=OrderResponse)
async def pass_order(
    order_id: uuid.UUID,
    body: PassRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).pass_order(order_id, principal, body.reason)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/start", response_model=OrderResponse)
async def start_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).start_order(order_id, principal)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/hold", response_model=OrderResponse)
async def hold_order(
    order_id: uuid.UUID,
    body: HoldRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).hold_order(order_id, principal, body.reason)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/resume", response_model=OrderResponse)
async def resume_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).resume_order(order_id, principal)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/fulfilment", response_model=OrderResponse)
async def submit_fulfilment(
    order_id: uuid.UUID,
    body: FulfilmentSubmit,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    order = await OrderService(db, blob_store).submit_fulfilment(order_id, principal, body)
    return OrderResponse.model_validate(order)


# ---------------------------------------------------------------------------
# Reseller transitions
# ---------------------------------------------------------------------------


@router.post("/{order_id}/complete", response_model=OrderResponse)
async def complete_order(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).complete_order(order_id, principal)
    return OrderResponse.model_validate(order)


# ---------------------------------------------------------------------------
# ACL overlay
# ---------------------------------------------------------------------------


def _access_info(order) -> OrderAccessInfoResponse:
    return OrderAccessInfoResponse(
        order_id=order.id,
        team_id=order.team_id,
        created_by_user_id=order.created_by_user_id,
        picked_by_staff_user_id=order.picked_by_staff_user_id,
        read_access_user_ids=order.read_access_user_ids,
        write_access_user_ids=order.write_access_user_ids,
    )


@router.get("/{order_id}/access", response_model=OrderAccessInfoResponse)
async def get_order_access(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderAccessService(db).get_access_info(order_id, principal)
    return _access_info(order)


@router.put("/{order_id}/access/read", response_model=OrderAccessInfoResponse)
async def update_read_access(
    order_id: uuid.UUID,
    body: AccessListUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderAccessService(db).update_read_access(order_id, principal, body.user_ids)
    return _access_info(order)


@router.put("/{order_id}/access/write", response_model=OrderAccessInfoResponse)
async def update_write_access(
    order_id: uuid.UUID,
    body: AccessListUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderAccessService(db).update_write_access(order_id, principal, body.user_ids)
    return _access_info(order)
