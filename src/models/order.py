"""Order model — a reseller purchase request fulfilled by staff."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import OrderSla, OrderStatus

if TYPE_CHECKING:
    from src.models.order_pass import OrderPass


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    # Ownership
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="RESTRICT"), nullable=False
    )
    created_by_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    picked_by_staff_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT")
    )

    # Classification
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False
    )
    sla: Mapped[OrderSla] = mapped_column(enum_type(OrderSla, "ordersla"), nullable=False)
    cart_value_usd: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency_override: Mapped[str | None] = mapped_column(String(3))

    # Descriptive
    merchant: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(255))
    pickup_address: Mapped[str | None] = mapped_column(Text)
    delivery_address: Mapped[str | None] = mapped_column(Text)
    time_window: Mapped[str | None] = mapped_column(String(100))
    items_summary: Mapped[str | None] = mapped_column(Text)
    attachment_file_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Lifecycle
    status: Mapped[OrderStatus] = mapped_column(
        enum_type(OrderStatus, "orderstatus"), nullable=False, default=OrderStatus.SUBMITTED
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    hold_reason: Mapped[str | None] = mapped_column(Text)
    auto_cancel_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    fulfilment: Mapped[dict | None] = mapped_column(JSONType)

    # ACL overlay (user id strings)
    read_access_user_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    write_access_user_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    passes: Mapped[list[OrderPass]] = relationship(
        "OrderPass",
        back_populates="order",
        lazy="selectin",
        order_by="OrderPass.passed_at",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_orders_status_created_at", "status", "created_at"),
        Index("ix_orders_team_id_created_at", "team_id", "created_at"),
        Index("ix_orders_created_by_user_id", "created_by_user_id"),
        Index("ix_orders_picked_by_staff_user_id", "picked_by_staff_user_id"),
        Index("ix_orders_created_at", "created_at"),
    )
