"""AccessService — load an order and enforce the access gate."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ForbiddenException, NotFoundException
from src.models.order import Order
from src.modules.access.gate import can_read, can_view_in_queue, can_write
from src.modules.identity.roles import Principal


class AccessService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: uuid.UUID, *, for_update: bool = False) -> Order:
        query = select(Order).where(Order.id == order_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def require_read(
        self, order_id: uuid.UUID, principal: Principal, *, allow_queue: bool = False
    ) -> Order:
        order = await self.get_order(order_id)
        if can_read(principal, order):
            return order
        if allow_queue and can_view_in_queue(principal, order):
            return order
        raise ForbiddenException("You do not have access to this order")

    async def require_write(
        self, order_id: uuid.UUID, principal: Principal, *, for_update: bool = False
    ) -> Order:
        order = await self.get_order(order_id, for_update=for_update)
        if not can_write(principal, order):
            raise ForbiddenException("You do not have write access to this order")
        return order
