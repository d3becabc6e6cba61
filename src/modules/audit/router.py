"""Audit log API router (owners only)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.exceptions import ForbiddenException
from src.modules.audit.schemas import AuditLogListResponse, AuditLogResponse
from src.modules.audit.service import AuditService
from src.modules.identity.dependencies import get_principal
from src.modules.identity.roles import Principal

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/", response_model=AuditLogListResponse)
async def list_audit_logs(
    action: str | None = Query(None),
    actor_user_id: uuid.UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Most recent audit entries across the system."""
    if not principal.is_owner:
        raise ForbiddenException("Only owners can read the audit log")
    items, total = await AuditService(db).list_recent(
        action=action, actor_user_id=actor_user_id, limit=limit, offset=offset
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(e) for e in items],
        total=total,
        limit=limit,
        offset=offset,
    )
