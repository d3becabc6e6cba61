from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import StaffStatus


class StaffMember(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "staff_members"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[StaffStatus] = mapped_column(
        enum_type(StaffStatus, "staffstatus"), nullable=False, default=StaffStatus.OFFLINE
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
