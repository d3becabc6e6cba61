"""FileRecord model — metadata for uploaded blobs and their entity linkage."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, enum_type
from src.models.enums import FileEntityType


class FileRecord(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "files"

    storage_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    ui_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(100))
    uploaded_by_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # Unlinked until both are set
    entity_type: Mapped[FileEntityType | None] = mapped_column(
        enum_type(FileEntityType, "fileentitytype")
    )
    entity_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    linked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_files_entity", "entity_type", "entity_id"),
        Index("ix_files_uploaded_by_user_id", "uploaded_by_user_id"),
    )
