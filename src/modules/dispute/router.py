"""Dispute API router — raise on completed orders, owner review and resolution."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.models.enums import DisputeStatus
from src.modules.dispute.schemas import (
    DisputeApproveRequest,
    DisputeCreate,
    DisputeDeclineRequest,
    DisputeListResponse,
    DisputePartialRefundRequest,
    DisputeResponse,
)
from src.modules.dispute.service import DisputeService
from src.modules.files.storage import BlobStore, get_blob_store
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal

router = APIRouter(tags=["disputes"])


# ---------------------------------------------------------------------------
# Per-order
# ---------------------------------------------------------------------------


@router.post("/orders/{order_id}/disputes", response_model=DisputeResponse, status_code=201)
async def raise_dispute(
    order_id: uuid.UUID,
    body: DisputeCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Raise a dispute against a completed order."""
    svc = DisputeService(db, blob_store)
    dispute = await svc.raise_dispute(
        order_id, principal, body.reason, body.attachment_file_ids
    )
    return DisputeResponse.model_validate(dispute)


@router.get("/orders/{order_id}/disputes", response_model=list[DisputeResponse])
async def list_order_disputes(
    order_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    disputes = await DisputeService(db).list_disputes_for_order(order_id, principal)
    return [DisputeResponse.model_validate(d) for d in disputes]


# ---------------------------------------------------------------------------
# Owner review
# ---------------------------------------------------------------------------


@router.get("/disputes", response_model=DisputeListResponse)
async def list_disputes(
    status: DisputeStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Owner review queue, newest first."""
    items, total = await DisputeService(db).list_disputes(
        principal, status=status, limit=limit, offset=offset
    )
    return DisputeListResponse(
        items=[DisputeResponse.model_validate(d) for d in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/disputes/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).get_dispute_for(dispute_id, principal)
    return DisputeResponse.model_validate(dispute)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@router.post("/disputes/{dispute_id}/approve", response_model=DisputeResponse)
async def approve_dispute(
    dispute_id: uuid.UUID,
    body: DisputeApproveRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Accept the complaint and complete the dispute."""
    dispute = await DisputeService(db).approve(dispute_id, principal, body.notes)
    return DisputeResponse.model_validate(dispute)


@router.post("/disputes/{dispute_id}/decline", response_model=DisputeResponse)
async def decline_dispute(
    dispute_id: uuid.UUID,
    body: DisputeDeclineRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).decline(dispute_id, principal, body.notes)
    return DisputeResponse.model_validate(dispute)


@router.post("/disputes/{dispute_id}/partial-refund", response_model=DisputeResponse)
async def partial_refund_dispute(
    dispute_id: uuid.UUID,
    body: DisputePartialRefundRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).partial_refund(
        dispute_id, principal, body.adjustment_amount_usd, body.notes
    )
    return DisputeResponse.model_validate(dispute)
