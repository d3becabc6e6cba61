from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import MemberRole, MemberStatus


class ResellerMember(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "reseller_members"

    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[MemberRole] = mapped_column(
        enum_type(MemberRole, "memberrole"), nullable=False, default=MemberRole.MEMBER
    )
    status: Mapped[MemberStatus] = mapped_column(
        enum_type(MemberStatus, "memberstatus"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_reseller_members_team_id", "team_id"),
        Index("ix_reseller_members_user_id", "user_id"),
        Index("ix_reseller_members_status", "status"),
        # At most one active membership per user
        Index(
            "uq_reseller_members_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
