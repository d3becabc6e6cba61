"""Order lifecycle service — creation, staff workflow, completion and auto-cancel."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.config import settings
from src.database.base import utcnow
from src.exceptions import (
    BusinessRuleException,
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from src.models.category import Category
from src.models.enums import FileEntityType, OrderStatus, UserRole
from src.models.order import Order
from src.models.order_pass import OrderPass
from src.models.staff_member import StaffMember
from src.models.team import Team
from src.modules.access.service import AccessService
from src.modules.audit.constants import (
    ACTION_ORDER_AUTO_CANCELLED,
    ACTION_ORDER_CANCELLED_ALL_PASSED,
    ACTION_ORDER_COMPLETED,
    ACTION_ORDER_CREATED,
    ACTION_ORDER_FULFIL_SUBMITTED,
    ACTION_ORDER_HOLD,
    ACTION_ORDER_IN_PROGRESS,
    ACTION_ORDER_PASSED,
    ACTION_ORDER_PICKED,
    ACTION_ORDER_RESUME,
    ENTITY_ORDER,
)
from src.modules.audit.service import AuditService
from src.modules.files.service import FileService
from src.modules.files.storage import BlobStore
from src.modules.identity.roles import Principal
from src.modules.order.constants import (
    COMPLETE_FROM,
    HOLD_FROM,
    ORDER_TRANSITIONS,
    PICK_FROM,
    RESUME_FROM,
    START_FROM,
    SUBMIT_FULFILMENT_FROM,
)
from src.modules.order.schemas import FulfilmentSubmit, OrderCreate

logger = logging.getLogger(__name__)


def check_transition(order: Order, target: OrderStatus, allowed_from: set[OrderStatus]) -> None:
    """Raise unless ``order`` may move to ``target`` from its current status."""
    current = order.status
    if current not in allowed_from or target not in ORDER_TRANSITIONS.get(current, set()):
        raise InvalidTransitionException(current.value, target.value)


class OrderService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore | None = None):
        self.db = db
        self.access = AccessService(db)
        self.files = FileService(db, blob_store)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _lock_order(self, order_id: uuid.UUID) -> Order:
        return await self.access.get_order(order_id, for_update=True)

    async def _apply(
        self,
        order: Order,
        actor_user_id: uuid.UUID,
        action: str,
        now: datetime,
        metadata: dict | None = None,
    ) -> Order:
        """Flush the mutated order and its audit row as one unit."""
        order.updated_at = now
        try:
            await self.db.flush()
        except StaleDataError as exc:
            raise ConflictException("Order was modified concurrently, please retry") from exc

        await self.audit.record(
            actor_user_id=actor_user_id,
            entity=ENTITY_ORDER,
            entity_id=order.id,
            action=action,
            metadata=metadata,
            order_id=order.id,
            created_at=now,
        )
        return order

    @staticmethod
    def _require_staff(principal: Principal, action: str) -> None:
        if not principal.is_staff:
            raise ForbiddenException(f"Only staff can {action} orders")

    @staticmethod
    def _require_picker(principal: Principal, order: Order, action: str) -> None:
        if not principal.is_staff or order.picked_by_staff_user_id != principal.user_id:
            raise ForbiddenException(f"Only the picking staff member can {action} this order")

    @staticmethod
    def _require_creator_or_admin(principal: Principal, order: Order, action: str) -> None:
        if principal.user_id == order.created_by_user_id:
            return
        if principal.is_team_admin(order.team_id):
            return
        raise ForbiddenException(
            f"Only the order creator or an active team admin can {action} this order"
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_order(self, principal: Principal, data: OrderCreate) -> Order:
        """Insert a new submitted order for a team the caller belongs to."""
        if principal.primary_role != UserRole.RESELLER:
            raise ForbiddenException("Only resellers can create orders")

        team = (
            await self.db.execute(select(Team).where(Team.id == data.team_id))
        ).scalar_one_or_none()
        if team is None:
            raise NotFoundException(f"Team {data.team_id} not found")
        if not principal.is_team_member(team.id):
            raise ForbiddenException("You are not an active member of this team")

        category = (
            await self.db.execute(select(Category).where(Category.id == data.category_id))
        ).scalar_one_or_none()
        if category is None:
            raise NotFoundException(f"Category {data.category_id} not found")
        if not category.is_active:
            raise BusinessRuleException(f"Category '{category.name}' is not active")

        if data.cart_value_usd < 0:
            raise ValidationException("cart_value_usd must be non-negative")

        now = utcnow()
        order = Order(
            team_id=team.id,
            created_by_user_id=principal.user_id,
            category_id=category.id,
            sla=data.sla,
            cart_value_usd=data.cart_value_usd,
            currency_override=data.currency_override,
            merchant=data.merchant,
            customer_name=data.customer_name,
            country=data.country,
            city=data.city,
            contact=data.contact,
            pickup_address=data.pickup_address,
            delivery_address=data.delivery_address,
            time_window=data.time_window,
            items_summary=data.items_summary,
            attachment_file_ids=[str(f) for f in dict.fromkeys(data.attachment_file_ids)],
            status=OrderStatus.SUBMITTED,
            read_access_user_ids=[],
            write_access_user_ids=[],
            passes=[],
            created_at=now,
            updated_at=now,
        )
        self.db.add(order)
        await self.db.flush()

        # Two-phase linkage: files were uploaded before the order id existed
        await self.files.link_files(
            principal, data.attachment_file_ids, FileEntityType.ORDER, order.id
        )

        await self.audit.record(
            actor_user_id=principal.user_id,
            entity=ENTITY_ORDER,
            entity_id=order.id,
            action=ACTION_ORDER_CREATED,
            metadata={
                "team_id": str(team.id),
                "category_id": str(category.id),
                "cart_value_usd": str(data.cart_value_usd),
            },
            order_id=order.id,
            created_at=now,
        )
        logger.info("Created order %s for team %s by %s", order.id, team.id, principal.user_id)
        return order

    # ------------------------------------------------------------------
    # Staff workflow
    # ------------------------------------------------------------------

    async def pick_order(self, order_id: uuid.UUID, principal: Principal) -> Order:
        """Claim an unpicked order; at most one staff member ever succeeds."""
        self._require_staff(principal, "pick")
        order = await self._lock_order(order_id)
        if order.picked_by_staff_user_id is not None:
            raise BusinessRuleException("Order already picked")
        check_transition(order, OrderStatus.PICKED, PICK_FROM)

        now = utcnow()
        order.picked_by_staff_user_id = principal.user_id
        order.status = OrderStatus.PICKED
        order.accepted_at = now
        await self._apply(order, principal.user_id, ACTION_ORDER_PICKED, now)
        logger.info("Order %s picked by %s", order.id, principal.user_id)
        return order

    async def pass_order(self, order_id: uuid.UUID, principal: Principal, reason: str) -> Order:
        """Decline an unpicked order.  Passing twice is a no-op."""
        self._require_staff(principal, "pass")
        reason = reason.strip()
        if not reason:
            raise ValidationException("A reason is required to pass an order")

        order = await self._lock_order(order_id)
        if order.picked_by_staff_user_id is not None:
            raise BusinessRuleException("Order already picked")
        if order.status != OrderStatus.SUBMITTED:
            raise BusinessRuleException(
                f"Cannot pass an order in status '{order.status.value}'"
            )
        if any(p.staff_user_id == principal.user_id for p in order.passes):
            return order

        now = utcnow()
        order.passes.append(
            OrderPass(staff_user_id=principal.user_id, reason=reason, passed_at=now)
        )
        await self._apply(
            order, principal.user_id, ACTION_ORDER_PASSED, now, metadata={"reason": reason}
        )
        logger.info("Order %s passed by %s", order.id, principal.user_id)

        if settings.order_cancel_when_all_staff_passed:
            await self._cancel_if_all_staff_passed(order, principal.user_id)
        return order

    async def _cancel_if_all_staff_passed(self, order: Order, actor_user_id: uuid.UUID) -> None:
        result = await self.db.execute(
            select(StaffMember.user_id).where(StaffMember.is_active.is_(True))
        )
        active_staff = set(result.scalars().all())
        if not active_staff or order.status != OrderStatus.SUBMITTED:
            return
        passed = {p.staff_user_id for p in order.passes}
        if not active_staff <= passed:
            return

        now = utcnow()
        order.status = OrderStatus.CANCELLED
        await self._apply(
            order,
            actor_user_id,
            ACTION_ORDER_CANCELLED_ALL_PASSED,
            now,
            metadata={"total_active_staff": len(active_staff)},
        )
        logger.info("Order %s cancelled: all %d active staff passed", order.id, len(active_staff))

    async def start_order(self, order_id: uuid.UUID, principal: Principal) -> Order:
        order = await self._lock_order(order_id)
        self._require_picker(principal, order, "start")
        check_transition(order, OrderStatus.IN_PROGRESS, START_FROM)

        now = utcnow()
        order.status = OrderStatus.IN_PROGRESS
        order.hold_reason = None
        return await self._apply(order, principal.user_id, ACTION_ORDER_IN_PROGRESS, now)

    async def hold_order(self, order_id: uuid.UUID, principal: Principal, reason: str) -> Order:
        reason = reason.strip()
        if not reason:
            raise ValidationException("A reason is required to put an order on hold")

        order = await self._lock_order(order_id)
        self._require_picker(principal, order, "hold")
        check_transition(order, OrderStatus.ON_HOLD, HOLD_FROM)

        now = utcnow()
        order.status = OrderStatus.ON_HOLD
        order.hold_reason = reason
        return await self._apply(
            order, principal.user_id, ACTION_ORDER_HOLD, now, metadata={"reason": reason}
        )

    async def resume_order(self, order_id: uuid.UUID, principal: Principal) -> Order:
        order = await self._lock_order(order_id)
        self._require_picker(principal, order, "resume")
        check_transition(order, OrderStatus.IN_PROGRESS, RESUME_FROM)

        now = utcnow()
        order.status = OrderStatus.IN_PROGRESS
        order.hold_reason = None
        return await self._apply(order, principal.user_id, ACTION_ORDER_RESUME, now)

    async def submit_fulfilment(
        self, order_id: uuid.UUID, principal: Principal, data: FulfilmentSubmit
    ) -> Order:
        """Record proof of purchase; this happens at most once per order."""
        order = await self._lock_order(order_id)
        self._require_picker(principal, order, "submit fulfilment for")
        check_transition(order, OrderStatus.FULFIL_SUBMITTED, SUBMIT_FULFILMENT_FROM)
        if order.fulfilment is not None:
            raise BusinessRuleException("Fulfilment has already been submitted")

        proof_file_ids = list(dict.fromkeys(data.proof_file_ids))
        await self.files.link_files(
            principal, proof_file_ids, FileEntityType.FULFILMENT, order.id
        )

        now = utcnow()
        order.fulfilment = {
            "merchant_link": data.merchant_link,
            "name_on_order": data.name_on_order,
            "final_value_usd": str(data.final_value_usd),
            "proof_file_ids": [str(f) for f in proof_file_ids],
        }
        order.status = OrderStatus.FULFIL_SUBMITTED
        order.hold_reason = None
        return await self._apply(
            order,
            principal.user_id,
            ACTION_ORDER_FULFIL_SUBMITTED,
            now,
            metadata={"final_value_usd": str(data.final_value_usd)},
        )

    # ------------------------------------------------------------------
    # Reseller side
    # ------------------------------------------------------------------

    async def complete_order(self, order_id: uuid.UUID, principal: Principal) -> Order:
        order = await self._lock_order(order_id)
        self._require_creator_or_admin(principal, order, "complete")
        check_transition(order, OrderStatus.COMPLETED, COMPLETE_FROM)

        now = utcnow()
        order.status = OrderStatus.COMPLETED
        await self._apply(order, principal.user_id, ACTION_ORDER_COMPLETED, now)
        logger.info("Order %s completed by %s", order.id, principal.user_id)
        return order

    # ------------------------------------------------------------------
    # Auto-cancel
    # ------------------------------------------------------------------

    async def find_stale_order_ids(self, cutoff: datetime) -> list[uuid.UUID]:
        """Unpicked submitted orders created at or before ``cutoff``, oldest first."""
        result = await self.db.execute(
            select(Order.id)
            .where(
                Order.status == OrderStatus.SUBMITTED,
                Order.picked_by_staff_user_id.is_(None),
                Order.created_at <= cutoff,
            )
            .order_by(Order.created_at.asc())
        )
        return list(result.scalars().all())

    async def auto_cancel_order(self, order_id: uuid.UUID, cutoff: datetime) -> bool:
        """Cancel one stale order.  Returns False when it no longer qualifies.

        The eligibility conditions are re-evaluated against the locked row, so
        a pick that committed first makes this a no-op.
        """
        result = await self.db.execute(
            select(Order)
            .where(
                Order.id == order_id,
                Order.status == OrderStatus.SUBMITTED,
                Order.picked_by_staff_user_id.is_(None),
                Order.created_at <= cutoff,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            return False

        now = utcnow()
        order.status = OrderStatus.CANCELLED
        order.auto_cancel_at = now
        await self._apply(
            order,
            order.created_by_user_id,
            ACTION_ORDER_AUTO_CANCELLED,
            now,
            metadata={"cutoff": cutoff.isoformat()},
        )
        logger.info("Auto-cancelled stale order %s", order.id)
        return True

    # ------------------------------------------------------------------
    # Get / List orders
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID, principal: Principal) -> Order:
        return await self.access.require_read(order_id, principal, allow_queue=True)

    async def _paginate(self, query, limit: int, offset: int) -> tuple[list[Order], int]:
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Order.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_orders_for_owner(
        self,
        principal: Principal,
        team_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
        category_id: uuid.UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        if not principal.is_owner:
            raise ForbiddenException("Only owners can list all orders")
        query = select(Order)
        if team_id is not None:
            query = query.where(Order.team_id == team_id)
        if status is not None:
            query = query.where(Order.status == status)
        if category_id is not None:
            query = query.where(Order.category_id == category_id)
        return await self._paginate(query, limit, offset)

    async def list_orders_for_reseller(
        self,
        principal: Principal,
        team_id: uuid.UUID,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """Team admins see every team order; other members see their own and shared ones."""
        if not principal.is_team_member(team_id):
            raise ForbiddenException("You are not an active member of this team")
        query = select(Order).where(Order.team_id == team_id)
        if not principal.is_team_admin(team_id):
            uid = str(principal.user_id)
            query = query.where(
                or_(
                    Order.created_by_user_id == principal.user_id,
                    cast(Order.read_access_user_ids, String).contains(uid),
                    cast(Order.write_access_user_ids, String).contains(uid),
                )
            )
        if status is not None:
            query = query.where(Order.status == status)
        return await self._paginate(query, limit, offset)

    async def staff_queue(
        self, principal: Principal, limit: int = 20, offset: int = 0
    ) -> tuple[list[Order], int]:
        """Submitted, unpicked orders the caller has not passed on."""
        self._require_staff(principal, "view queued")
        passed_by_me = select(OrderPass.order_id).where(
            OrderPass.staff_user_id == principal.user_id
        )
        query = select(Order).where(
            Order.status == OrderStatus.SUBMITTED,
            Order.picked_by_staff_user_id.is_(None),
            Order.id.not_in(passed_by_me),
        )
        return await self._paginate(query, limit, offset)

    async def list_my_work(
        self,
        principal: Principal,
        status: OrderStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        self._require_staff(principal, "list picked")
        query = select(Order).where(Order.picked_by_staff_user_id == principal.user_id)
        if status is not None:
            query = query.where(Order.status == status)
        return await self._paginate(query, limit, offset)

    async def list_orders_for_viewer(
        self, principal: Principal, limit: int = 20, offset: int = 0
    ) -> tuple[list[Order], int]:
        """Every order the caller can read, dispatched on their role."""
        if principal.is_owner:
            return await self.list_orders_for_owner(principal, limit=limit, offset=offset)

        uid = str(principal.user_id)
        conditions = [
            Order.created_by_user_id == principal.user_id,
            cast(Order.read_access_user_ids, String).contains(uid),
            cast(Order.write_access_user_ids, String).contains(uid),
        ]
        if principal.is_staff:
            conditions.append(Order.picked_by_staff_user_id == principal.user_id)
        admin_teams = [t for t in principal.team_ids() if principal.is_team_admin(t)]
        if admin_teams:
            conditions.append(Order.team_id.in_(admin_teams))
        return await self._paginate(select(Order).where(or_(*conditions)), limit, offset)
