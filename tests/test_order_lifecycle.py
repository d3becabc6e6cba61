"""Tests for OrderService: creation, staff workflow, completion and audit trail."""

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from src.config import settings
from src.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from src.models.enums import MemberRole, MemberStatus, OrderSla, OrderStatus
from src.models.order import Order
from src.modules.order.access_service import OrderAccessService
from src.modules.order.schemas import FulfilmentSubmit, OrderCreate
from src.modules.order.service import OrderService


def _make_create(team_id, category_id, **overrides) -> OrderCreate:
    values = dict(
        team_id=team_id,
        category_id=category_id,
        sla=OrderSla.ASAP,
        cart_value_usd=Decimal("19.99"),
        merchant="Corner Market",
        customer_name="Dana Customer",
        country="PT",
        city="Porto",
    )
    values.update(overrides)
    return OrderCreate(**values)


def _make_fulfilment(**overrides) -> FulfilmentSubmit:
    values = dict(
        merchant_link="https://merchant.example.com/orders/991",
        name_on_order="Dana Customer",
        final_value_usd=Decimal("18.75"),
    )
    values.update(overrides)
    return FulfilmentSubmit(**values)


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_member_creates_submitted_order(self, db, make):
        team = await make.team()
        member = await make.member(team)
        category = await make.category()
        principal = await make.principal(member)

        order = await OrderService(db).create_order(principal, _make_create(team.id, category.id))

        assert order.status == OrderStatus.SUBMITTED
        assert order.team_id == team.id
        assert order.created_by_user_id == member.id
        assert order.picked_by_staff_user_id is None
        assert order.read_access_user_ids == []
        assert order.write_access_user_ids == []
        assert await make.audit_count(order.id, "order_created") == 1

    @pytest.mark.asyncio
    async def test_default_member_can_create(self, db, make):
        team = await make.team()
        member = await make.member(team, status=MemberStatus.DEFAULT_MEMBER)
        category = await make.category()

        order = await OrderService(db).create_order(
            await make.principal(member), _make_create(team.id, category.id)
        )
        assert order.status == OrderStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, db, make):
        team = await make.team()
        other_team = await make.team()
        outsider = await make.member(other_team)
        category = await make.category()

        with pytest.raises(ForbiddenException):
            await OrderService(db).create_order(
                await make.principal(outsider), _make_create(team.id, category.id)
            )

    @pytest.mark.asyncio
    async def test_pending_invitee_rejected(self, db, make):
        team = await make.team()
        invitee = await make.member(
            team, status=MemberStatus.PENDING_INVITATION, is_active=False
        )
        category = await make.category()

        with pytest.raises(ForbiddenException):
            await OrderService(db).create_order(
                await make.principal(invitee), _make_create(team.id, category.id)
            )

    @pytest.mark.asyncio
    async def test_staff_cannot_create(self, db, make):
        team = await make.team()
        staff = await make.staff()
        category = await make.category()

        with pytest.raises(ForbiddenException, match="Only resellers"):
            await OrderService(db).create_order(
                await make.principal(staff), _make_create(team.id, category.id)
            )

    @pytest.mark.asyncio
    async def test_inactive_category_rejected(self, db, make):
        team = await make.team()
        member = await make.member(team)
        category = await make.category(is_active=False)

        with pytest.raises(BusinessRuleException, match="not active"):
            await OrderService(db).create_order(
                await make.principal(member), _make_create(team.id, category.id)
            )

    @pytest.mark.asyncio
    async def test_unknown_category_not_found(self, db, make):
        team = await make.team()
        member = await make.member(team)

        with pytest.raises(NotFoundException):
            await OrderService(db).create_order(
                await make.principal(member), _make_create(team.id, uuid.uuid4())
            )


# ---------------------------------------------------------------------------
# pick / pass
# ---------------------------------------------------------------------------


class TestPickOrder:
    @pytest.mark.asyncio
    async def test_second_pick_rejected(self, db, make):
        """First staff member wins; the second sees 'already picked'."""
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        s1 = await make.staff()
        s2 = await make.staff()
        svc = OrderService(db)

        picked = await svc.pick_order(order.id, await make.principal(s1))
        assert picked.status == OrderStatus.PICKED
        assert picked.picked_by_staff_user_id == s1.id
        assert picked.accepted_at is not None

        with pytest.raises(BusinessRuleException, match="Order already picked"):
            await svc.pick_order(order.id, await make.principal(s2))

        assert order.picked_by_staff_user_id == s1.id
        assert await make.audit_count(order.id, "order_picked") == 1

    @pytest.mark.asyncio
    async def test_concurrent_pick_on_stale_row_conflicts(self, db, make, session_factory):
        """A pick racing on an outdated copy of the row loses on the version check."""
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        s1 = await make.staff()
        s2 = await make.staff()
        p1 = await make.principal(s1)
        p2 = await make.principal(s2)
        await db.commit()

        async with session_factory() as late_session:
            stale = await late_session.get(Order, order.id)
            assert stale.picked_by_staff_user_id is None

            async with session_factory() as first_session:
                await OrderService(first_session).pick_order(order.id, p1)
                await first_session.commit()

            late = OrderService(late_session)
            with patch.object(late, "_lock_order", AsyncMock(return_value=stale)):
                with pytest.raises(ConflictException, match="modified concurrently"):
                    await late.pick_order(order.id, p2)
            await late_session.rollback()

        picker = (
            await db.execute(select(Order.picked_by_staff_user_id).where(Order.id == order.id))
        ).scalar_one()
        assert picker == s1.id
        assert await make.audit_count(order.id, "order_picked") == 1

    @pytest.mark.asyncio
    async def test_access_update_on_stale_row_conflicts(self, db, make, session_factory):
        team = await make.team()
        creator = await make.member(team)
        teammate = await make.member(team)
        order = await make.order(team, creator)
        staff = await make.staff()
        owner = await make.owner()
        staff_principal = await make.principal(staff)
        owner_principal = await make.principal(owner)
        await db.commit()

        async with session_factory() as late_session:
            stale = await late_session.get(Order, order.id)

            async with session_factory() as first_session:
                await OrderService(first_session).pick_order(order.id, staff_principal)
                await first_session.commit()

            late = OrderAccessService(late_session)
            with patch.object(late.access, "get_order", AsyncMock(return_value=stale)):
                with pytest.raises(ConflictException):
                    await late.update_read_access(order.id, owner_principal, [teammate.id])
            await late_session.rollback()

        assert await make.audit_count(order.id, "order_read_access_updated") == 0

    @pytest.mark.asyncio
    async def test_reseller_cannot_pick(self, db, make):
        team = await make.team()
        admin = await make.admin(team)
        order = await make.order(team, admin)

        with pytest.raises(ForbiddenException):
            await OrderService(db).pick_order(order.id, await make.principal(admin))

    @pytest.mark.asyncio
    async def test_pick_cancelled_order_rejected(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member, status=OrderStatus.CANCELLED)
        staff = await make.staff()

        with pytest.raises(InvalidTransitionException):
            await OrderService(db).pick_order(order.id, await make.principal(staff))
        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_pick_missing_order_not_found(self, db, make):
        staff = await make.staff()
        with pytest.raises(NotFoundException):
            await OrderService(db).pick_order(uuid.uuid4(), await make.principal(staff))


class TestPassOrder:
    @pytest.mark.asyncio
    async def test_pass_records_reason(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()

        result = await OrderService(db).pass_order(
            order.id, await make.principal(staff), "  Merchant closed  "
        )

        assert result.status == OrderStatus.SUBMITTED
        assert [(p.staff_user_id, p.reason) for p in result.passes] == [
            (staff.id, "Merchant closed")
        ]
        assert await make.audit_count(order.id, "order_passed") == 1

    @pytest.mark.asyncio
    async def test_repeat_pass_is_noop(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()
        principal = await make.principal(staff)
        svc = OrderService(db)

        await svc.pass_order(order.id, principal, "Too far")
        await svc.pass_order(order.id, principal, "Still too far")

        assert len(order.passes) == 1
        assert order.passes[0].reason == "Too far"
        assert await make.audit_count(order.id, "order_passed") == 1

    @pytest.mark.asyncio
    async def test_blank_reason_rejected(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()

        with pytest.raises(ValidationException):
            await OrderService(db).pass_order(order.id, await make.principal(staff), "   ")

    @pytest.mark.asyncio
    async def test_pass_on_picked_order_rejected(self, db, make):
        team = await make.team()
        member = await make.member(team)
        picker = await make.staff()
        order = await make.order(team, member, status=OrderStatus.PICKED, picked_by=picker)
        other = await make.staff()

        with pytest.raises(BusinessRuleException, match="already picked"):
            await OrderService(db).pass_order(order.id, await make.principal(other), "Busy")

    @pytest.mark.asyncio
    async def test_all_active_staff_passing_cancels_when_enabled(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        s1 = await make.staff()
        s2 = await make.staff()
        await make.staff(is_active=False)
        svc = OrderService(db)

        with patch.object(settings, "order_cancel_when_all_staff_passed", True):
            await svc.pass_order(order.id, await make.principal(s1), "No stock")
            assert order.status == OrderStatus.SUBMITTED
            await svc.pass_order(order.id, await make.principal(s2), "No stock")

        assert order.status == OrderStatus.CANCELLED
        assert await make.audit_count(order.id, "order_cancelled_auto_all_passed") == 1

    @pytest.mark.asyncio
    async def test_all_staff_passing_keeps_order_when_disabled(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()

        with patch.object(settings, "order_cancel_when_all_staff_passed", False):
            await OrderService(db).pass_order(order.id, await make.principal(staff), "No stock")

        assert order.status == OrderStatus.SUBMITTED


# ---------------------------------------------------------------------------
# start / hold / resume / fulfilment
# ---------------------------------------------------------------------------


class TestStaffWorkflow:
    @pytest.mark.asyncio
    async def test_full_workflow_writes_one_audit_row_per_step(self, db, make):
        team = await make.team()
        admin = await make.admin(team)
        order = await make.order(team, admin)
        staff = await make.staff()
        principal = await make.principal(staff)
        svc = OrderService(db)

        await svc.pick_order(order.id, principal)
        await svc.start_order(order.id, principal)
        await svc.hold_order(order.id, principal, "Waiting on merchant")
        assert order.status == OrderStatus.ON_HOLD
        assert order.hold_reason == "Waiting on merchant"

        await svc.resume_order(order.id, principal)
        assert order.status == OrderStatus.IN_PROGRESS
        assert order.hold_reason is None

        await svc.submit_fulfilment(order.id, principal, _make_fulfilment())
        assert order.status == OrderStatus.FULFIL_SUBMITTED
        assert order.fulfilment["final_value_usd"] == "18.75"

        await svc.complete_order(order.id, await make.principal(admin))
        assert order.status == OrderStatus.COMPLETED

        for action in (
            "order_picked",
            "order_in_progress",
            "order_hold",
            "order_resume",
            "order_fulfil_submitted",
            "order_completed",
        ):
            assert await make.audit_count(order.id, action) == 1
        assert await make.audit_count(order.id) == 6

    @pytest.mark.asyncio
    async def test_non_picker_cannot_hold(self, db, make):
        """Only the picking staff member may hold; the order stays put."""
        team = await make.team()
        member = await make.member(team)
        picker = await make.staff()
        order = await make.order(team, member, status=OrderStatus.IN_PROGRESS, picked_by=picker)
        other = await make.staff()

        with pytest.raises(ForbiddenException):
            await OrderService(db).hold_order(order.id, await make.principal(other), "Mine now")

        assert order.status == OrderStatus.IN_PROGRESS
        assert await make.audit_count(order.id) == 0

    @pytest.mark.asyncio
    async def test_start_from_submitted_is_invalid(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        # Picked by this staff member but status never advanced
        order = await make.order(team, member, status=OrderStatus.SUBMITTED, picked_by=staff)

        with pytest.raises(InvalidTransitionException) as exc_info:
            await OrderService(db).start_order(order.id, await make.principal(staff))

        assert exc_info.value.current == "submitted"
        assert exc_info.value.target == "in_progress"
        assert order.status == OrderStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_resume_requires_on_hold(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.IN_PROGRESS, picked_by=staff)

        with pytest.raises(InvalidTransitionException):
            await OrderService(db).resume_order(order.id, await make.principal(staff))
        assert order.status == OrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_hold_requires_reason(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.PICKED, picked_by=staff)

        with pytest.raises(ValidationException):
            await OrderService(db).hold_order(order.id, await make.principal(staff), "")

    @pytest.mark.asyncio
    async def test_fulfilment_from_picked_is_invalid(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.PICKED, picked_by=staff)

        with pytest.raises(InvalidTransitionException):
            await OrderService(db).submit_fulfilment(
                order.id, await make.principal(staff), _make_fulfilment()
            )
        assert order.fulfilment is None

    @pytest.mark.asyncio
    async def test_fulfilment_from_on_hold_allowed(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.ON_HOLD, picked_by=staff)

        await OrderService(db).submit_fulfilment(
            order.id, await make.principal(staff), _make_fulfilment()
        )
        assert order.status == OrderStatus.FULFIL_SUBMITTED


# ---------------------------------------------------------------------------
# complete
# ---------------------------------------------------------------------------


class TestCompleteOrder:
    @pytest.mark.asyncio
    async def test_team_admin_completes(self, db, make):
        team = await make.team()
        member = await make.member(team)
        admin = await make.admin(team)
        staff = await make.staff()
        order = await make.order(
            team, member, status=OrderStatus.FULFIL_SUBMITTED, picked_by=staff
        )

        result = await OrderService(db).complete_order(order.id, await make.principal(admin))
        assert result.status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_creator_completes(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(
            team, member, status=OrderStatus.FULFIL_SUBMITTED, picked_by=staff
        )

        result = await OrderService(db).complete_order(order.id, await make.principal(member))
        assert result.status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_other_member_cannot_complete(self, db, make):
        team = await make.team()
        creator = await make.member(team)
        bystander = await make.member(team)
        staff = await make.staff()
        order = await make.order(
            team, creator, status=OrderStatus.FULFIL_SUBMITTED, picked_by=staff
        )

        with pytest.raises(ForbiddenException):
            await OrderService(db).complete_order(order.id, await make.principal(bystander))
        assert order.status == OrderStatus.FULFIL_SUBMITTED

    @pytest.mark.asyncio
    async def test_blocked_admin_cannot_complete(self, db, make):
        team = await make.team()
        creator = await make.member(team)
        blocked = await make.member(team, role=MemberRole.ADMIN, is_blocked=True)
        staff = await make.staff()
        order = await make.order(
            team, creator, status=OrderStatus.FULFIL_SUBMITTED, picked_by=staff
        )

        with pytest.raises(ForbiddenException):
            await OrderService(db).complete_order(order.id, await make.principal(blocked))

    @pytest.mark.asyncio
    async def test_complete_before_fulfilment_is_invalid(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.IN_PROGRESS, picked_by=staff)

        with pytest.raises(InvalidTransitionException):
            await OrderService(db).complete_order(order.id, await make.principal(member))
        assert order.status == OrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_completed_order_is_terminal(self, db, make):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.COMPLETED, picked_by=staff)
        svc = OrderService(db)

        with pytest.raises(InvalidTransitionException):
            await svc.complete_order(order.id, await make.principal(member))
        with pytest.raises(InvalidTransitionException):
            await svc.start_order(order.id, await make.principal(staff))


# ---------------------------------------------------------------------------
# Reads and listings
# ---------------------------------------------------------------------------


class TestOrderQueries:
    @pytest.mark.asyncio
    async def test_staff_can_view_queued_order_until_passing(self, db, make):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()
        principal = await make.principal(staff)
        svc = OrderService(db)

        assert (await svc.get_order(order.id, principal)).id == order.id
        items, total = await svc.staff_queue(principal)
        assert total == 1 and items[0].id == order.id

        await svc.pass_order(order.id, principal, "Not today")

        with pytest.raises(ForbiddenException):
            await svc.get_order(order.id, principal)
        _, total = await svc.staff_queue(principal)
        assert total == 0

    @pytest.mark.asyncio
    async def test_member_sees_only_own_team_orders(self, db, make):
        team = await make.team()
        member = await make.member(team)
        teammate = await make.member(team)
        admin = await make.admin(team)
        category = await make.category()
        mine = await make.order(team, member, category=category)
        await make.order(team, teammate, category=category)
        svc = OrderService(db)

        items, total = await svc.list_orders_for_reseller(await make.principal(member), team.id)
        assert total == 1 and items[0].id == mine.id

        _, admin_total = await svc.list_orders_for_reseller(await make.principal(admin), team.id)
        assert admin_total == 2

    @pytest.mark.asyncio
    async def test_viewer_listing_includes_overlay_grants(self, db, make):
        team = await make.team()
        creator = await make.member(team)
        viewer = await make.member(await make.team())
        category = await make.category()
        shared = await make.order(
            team, creator, category=category, read_access_user_ids=[str(viewer.id)]
        )
        await make.order(team, creator, category=category)

        items, total = await OrderService(db).list_orders_for_viewer(await make.principal(viewer))
        assert total == 1
        assert items[0].id == shared.id

    @pytest.mark.asyncio
    async def test_owner_listing_filters_by_status(self, db, make):
        team = await make.team()
        member = await make.member(team)
        owner = await make.owner()
        category = await make.category()
        await make.order(team, member, category=category)
        await make.order(team, member, category=category, status=OrderStatus.CANCELLED)
        svc = OrderService(db)
        principal = await make.principal(owner)

        _, total = await svc.list_orders_for_owner(principal)
        assert total == 2
        items, total = await svc.list_orders_for_owner(principal, status=OrderStatus.CANCELLED)
        assert total == 1 and items[0].status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_non_owner_cannot_list_all(self, db, make):
        staff = await make.staff()
        with pytest.raises(ForbiddenException):
            await OrderService(db).list_orders_for_owner(await make.principal(staff))
