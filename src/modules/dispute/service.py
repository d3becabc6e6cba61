"""Dispute service — raising disputes on completed orders and owner resolution."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from src.models.dispute import Dispute
from src.models.enums import DisputeStatus, FileEntityType, OrderStatus
from src.modules.access.service import AccessService
from src.modules.audit.constants import ACTION_ORDER_DISPUTED, ENTITY_DISPUTE, ENTITY_ORDER
from src.modules.audit.service import AuditService
from src.modules.dispute.constants import RESOLUTION_ACTIONS, RESOLVABLE_STATUSES
from src.modules.files.service import FileService
from src.modules.files.storage import BlobStore
from src.modules.identity.roles import Principal
from src.modules.order.constants import DISPUTE_FROM

logger = logging.getLogger(__name__)


class DisputeService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore | None = None):
        self.db = db
        self.access = AccessService(db)
        self.files = FileService(db, blob_store)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Raise
    # ------------------------------------------------------------------

    async def raise_dispute(
        self,
        order_id: uuid.UUID,
        principal: Principal,
        reason: str,
        attachment_file_ids: list[uuid.UUID] | None = None,
    ) -> Dispute:
        """Open a dispute on a completed order.  The order's status is left as is."""
        reason = reason.strip()
        if not reason:
            raise ValidationException("A reason is required to raise a dispute")

        order = await self.access.get_order(order_id, for_update=True)
        if principal.user_id != order.created_by_user_id and not principal.is_team_admin(
            order.team_id
        ):
            raise ForbiddenException(
                "Only the order creator or an active team admin can raise a dispute"
            )
        if order.status not in DISPUTE_FROM:
            raise BusinessRuleException(
                f"Disputes can only be raised on completed orders (status is '{order.status.value}')"
            )

        now = utcnow()
        file_ids = list(dict.fromkeys(attachment_file_ids or []))
        dispute = Dispute(
            order_id=order.id,
            team_id=order.team_id,
            raised_by_user_id=principal.user_id,
            reason=reason,
            attachment_file_ids=[str(f) for f in file_ids],
            status=DisputeStatus.OPEN,
            created_at=now,
            updated_at=now,
        )
        self.db.add(dispute)
        await self.db.flush()

        await self.files.link_files(principal, file_ids, FileEntityType.DISPUTE, dispute.id)

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_ORDER,
            entity_id=order.id,
            action=ACTION_ORDER_DISPUTED,
            metadata={"dispute_id": str(dispute.id), "reason": reason},
            order_id=order.id,
            created_at=now,
        )
        logger.info("Dispute %s raised on order %s by %s", dispute.id, order.id, principal.user_id)
        return dispute

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_dispute(self, dispute_id: uuid.UUID) -> Dispute:
        result = await self.db.execute(select(Dispute).where(Dispute.id == dispute_id))
        dispute = result.scalar_one_or_none()
        if dispute is None:
            raise NotFoundException(f"Dispute {dispute_id} not found")
        return dispute

    async def get_dispute_for(self, dispute_id: uuid.UUID, principal: Principal) -> Dispute:
        dispute = await self.get_dispute(dispute_id)
        await self.access.require_read(dispute.order_id, principal)
        return dispute

    async def list_disputes_for_order(
        self, order_id: uuid.UUID, principal: Principal
    ) -> list[Dispute]:
        await self.access.require_read(order_id, principal)
        result = await self.db.execute(
            select(Dispute).where(Dispute.order_id == order_id).order_by(Dispute.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_disputes(
        self,
        principal: Principal,
        status: DisputeStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dispute], int]:
        """Owner review queue, newest first."""
        if not principal.is_owner:
            raise ForbiddenException("Only owners can review disputes")

        query = select(Dispute)
        count_query = select(func.count()).select_from(Dispute)
        if status is not None:
            query = query.where(Dispute.status == status)
            count_query = count_query.where(Dispute.status == status)

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Dispute.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_open_disputes(
        self, principal: Principal, limit: int = 20, offset: int = 0
    ) -> tuple[list[Dispute], int]:
        return await self.list_disputes(principal, DisputeStatus.OPEN, limit, offset)

    # ------------------------------------------------------------------
    # Resolve (owner only)
    # ------------------------------------------------------------------

    async def approve(
        self, dispute_id: uuid.UUID, principal: Principal, notes: str | None = None
    ) -> Dispute:
        return await self._resolve(dispute_id, principal, DisputeStatus.APPROVED, notes)

    async def decline(self, dispute_id: uuid.UUID, principal: Principal, notes: str) -> Dispute:
        if not notes or not notes.strip():
            raise ValidationException("Notes are required to decline a dispute")
        return await self._resolve(dispute_id, principal, DisputeStatus.DECLINED, notes.strip())

    async def partial_refund(
        self,
        dispute_id: uuid.UUID,
        principal: Principal,
        adjustment_amount_usd: Decimal,
        notes: str | None = None,
    ) -> Dispute:
        if adjustment_amount_usd <= 0:
            raise ValidationException("Adjustment amount must be positive")
        return await self._resolve(
            dispute_id,
            principal,
            DisputeStatus.PARTIAL_REFUND,
            notes,
            adjustment_amount_usd=adjustment_amount_usd,
        )

    async def _resolve(
        self,
        dispute_id: uuid.UUID,
        principal: Principal,
        outcome: DisputeStatus,
        notes: str | None,
        adjustment_amount_usd: Decimal | None = None,
    ) -> Dispute:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can resolve disputes")

        result = await self.db.execute(
            select(Dispute)
            .where(Dispute.id == dispute_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        dispute = result.scalar_one_or_none()
        if dispute is None:
            raise NotFoundException(f"Dispute {dispute_id} not found")
        if dispute.status not in RESOLVABLE_STATUSES:
            raise BusinessRuleException(
                f"Dispute is already resolved (status is '{dispute.status.value}')"
            )

        now = utcnow()
        dispute.status = outcome
        dispute.resolution_notes = notes
        dispute.adjustment_amount_usd = adjustment_amount_usd
        dispute.resolved_by_user_id = principal.user_id
        dispute.resolved_at = now
        dispute.updated_at = now
        await self.db.flush()

        metadata: dict = {"notes": notes}
        if adjustment_amount_usd is not None:
            metadata["adjustment_amount_usd"] = str(adjustment_amount_usd)
        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_DISPUTE,
            entity_id=dispute.id,
            action=RESOLUTION_ACTIONS[outcome],
            metadata=metadata,
            order_id=dispute.order_id,
            created_at=now,
        )
        logger.info("Dispute %s resolved as %s", dispute.id, outcome.value)
        return dispute
