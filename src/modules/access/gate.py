"""Read/write permission predicates for orders and their satellite records.

These are the only authorization rules for order data.  Chat, files and
disputes all defer to them rather than re-deriving access locally.
"""

from __future__ import annotations

from typing import assert_never

from src.models.enums import OrderStatus
from src.models.order import Order
from src.modules.identity.roles import (
    Owner,
    Principal,
    ResellerAdmin,
    ResellerDefault,
    ResellerMember,
    Role,
    Staff,
)


def _role_grants_access(role: Role, principal: Principal, order: Order) -> bool:
    if isinstance(role, Owner):
        return True
    if isinstance(role, Staff):
        return (
            order.picked_by_staff_user_id is not None
            and order.picked_by_staff_user_id == principal.user_id
        )
    if isinstance(role, ResellerAdmin):
        return role.team_id == order.team_id
    if isinstance(role, (ResellerMember, ResellerDefault)):
        return False
    assert_never(role)


def _listed(principal: Principal, user_ids: list | None) -> bool:
    return str(principal.user_id) in (user_ids or [])


def can_write(principal: Principal, order: Order) -> bool:
    if principal.user_id == order.created_by_user_id:
        return True
    if any(_role_grants_access(role, principal, order) for role in principal.roles):
        return True
    return _listed(principal, order.write_access_user_ids)


def can_read(principal: Principal, order: Order) -> bool:
    if can_write(principal, order):
        return True
    return _listed(principal, order.read_access_user_ids)


def can_view_in_queue(principal: Principal, order: Order) -> bool:
    """Staff may see an unpicked submitted order until they pass on it."""
    if not principal.is_staff:
        return False
    if order.status != OrderStatus.SUBMITTED or order.picked_by_staff_user_id is not None:
        return False
    return all(p.staff_user_id != principal.user_id for p in order.passes)
