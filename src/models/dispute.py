"""Dispute model — post-completion complaints against an order."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import DisputeStatus


class Dispute(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "disputes"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    raised_by_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    attachment_file_ids: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[DisputeStatus] = mapped_column(
        enum_type(DisputeStatus, "disputestatus"), nullable=False, default=DisputeStatus.OPEN
    )

    # Resolution
    resolution_notes: Mapped[str | None] = mapped_column(Text)
    adjustment_amount_usd: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    resolved_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_disputes_order_id", "order_id"),
        Index("ix_disputes_team_id", "team_id"),
        Index("ix_disputes_status", "status"),
    )
