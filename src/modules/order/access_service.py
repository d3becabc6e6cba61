"""Management of the per-order read/write ACL overlay lists."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.database.base import utcnow
from src.exceptions import BusinessRuleException, ConflictException, ForbiddenException
from src.models.enums import MemberStatus
from src.models.order import Order
from src.models.reseller_member import ResellerMember
from src.modules.access.service import AccessService
from src.modules.audit.constants import (
    ACTION_ORDER_READ_ACCESS_UPDATED,
    ACTION_ORDER_WRITE_ACCESS_UPDATED,
    ENTITY_ORDER,
)
from src.modules.audit.service import AuditService
from src.modules.identity.roles import Principal

logger = logging.getLogger(__name__)


class OrderAccessService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.access = AccessService(db)

    async def update_read_access(
        self, order_id: uuid.UUID, principal: Principal, user_ids: list[uuid.UUID]
    ) -> Order:
        return await self._update(order_id, principal, user_ids, write=False)

    async def update_write_access(
        self, order_id: uuid.UUID, principal: Principal, user_ids: list[uuid.UUID]
    ) -> Order:
        return await self._update(order_id, principal, user_ids, write=True)

    async def get_access_info(self, order_id: uuid.UUID, principal: Principal) -> Order:
        return await self.access.require_read(order_id, principal)

    async def _update(
        self,
        order_id: uuid.UUID,
        principal: Principal,
        user_ids: list[uuid.UUID],
        *,
        write: bool,
    ) -> Order:
        order = await self.access.get_order(order_id, for_update=True)

        if principal.is_owner:
            pass
        elif principal.is_team_admin(order.team_id):
            await self._require_team_members(order.team_id, user_ids)
        else:
            raise ForbiddenException("Only owners or team admins can manage order access")

        targets = [str(u) for u in dict.fromkeys(user_ids)]
        now = utcnow()
        if write:
            order.write_access_user_ids = targets
            action = ACTION_ORDER_WRITE_ACCESS_UPDATED
        else:
            order.read_access_user_ids = targets
            action = ACTION_ORDER_READ_ACCESS_UPDATED
        order.updated_at = now

        try:
            await self.db.flush()
        except StaleDataError as exc:
            raise ConflictException("Order was modified concurrently, please retry") from exc

        await AuditService(self.db).record(
            actor_user_id=principal.user_id,
            entity=ENTITY_ORDER,
            entity_id=order.id,
            action=action,
            metadata={"user_ids": targets},
            order_id=order.id,
            created_at=now,
        )
        logger.info("Updated %s access on order %s", "write" if write else "read", order.id)
        return order

    async def _require_team_members(self, team_id: uuid.UUID, user_ids: list[uuid.UUID]) -> None:
        """Team admins may only grant access to active members of their own team."""
        if not user_ids:
            return
        result = await self.db.execute(
            select(ResellerMember.user_id).where(
                ResellerMember.team_id == team_id,
                ResellerMember.user_id.in_(user_ids),
                ResellerMember.status == MemberStatus.ACTIVE_MEMBER,
                ResellerMember.is_active.is_(True),
                ResellerMember.is_blocked.is_(False),
            )
        )
        members = set(result.scalars().all())
        outsiders = [str(u) for u in user_ids if u not in members]
        if outsiders:
            raise BusinessRuleException(
                "Access can only be granted to active members of the order's team",
                details=[{"field": "user_ids", "message": u} for u in outsiders],
            )
