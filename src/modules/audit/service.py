"""AuditService — append-only audit trail written inside the caller's transaction."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.models.audit import AuditLog


class AuditService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor_user_id: uuid.UUID,
        entity: str,
        entity_id: uuid.UUID | str,
        action: str,
        metadata: dict | None = None,
        order_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
    ) -> AuditLog:
        """Add one audit row and flush it with the pending state change."""
        entry = AuditLog(
            actor_user_id=actor_user_id,
            entity=entity,
            entity_id=str(entity_id),
            action=action,
            metadata_=metadata or {},
            order_id=order_id,
            created_at=created_at or utcnow(),
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_for_order(self, order_id: uuid.UUID) -> list[AuditLog]:
        """Chronological history of one order."""
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.order_id == order_id)
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        )
        return list(result.scalars().all())

    async def list_recent(
        self,
        action: str | None = None,
        actor_user_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        """Most recent entries first, optionally filtered by action or actor."""
        query = select(AuditLog)
        count_query = select(func.count()).select_from(AuditLog)

        if action is not None:
            query = query.where(AuditLog.action == action)
            count_query = count_query.where(AuditLog.action == action)
        if actor_user_id is not None:
            query = query.where(AuditLog.actor_user_id == actor_user_id)
            count_query = count_query.where(AuditLog.actor_user_id == actor_user_id)

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total
