"""File metadata service — upload bookkeeping, entity linkage and access checks."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import BusinessRuleException, ForbiddenException, NotFoundException
from src.models.chat import Chat, Message
from src.models.dispute import Dispute
from src.models.enums import FileEntityType
from src.models.file_record import FileRecord
from src.modules.access.gate import can_read
from src.modules.access.service import AccessService
from src.modules.audit.constants import ACTION_FILE_UPLOADED, ENTITY_FILE
from src.modules.audit.service import AuditService
from src.modules.files.storage import BlobStore, LocalBlobStore
from src.modules.identity.roles import Principal

logger = logging.getLogger(__name__)

_PENDING_BLOB_DELETES = "pending_blob_deletes"


def _hook_blob_deletes(db: AsyncSession) -> list[tuple[BlobStore, str]]:
    """Return the session's queue of blobs to remove once its transaction commits.

    Metadata rows go away with the transaction; the blobs only after it has
    committed, so a rollback never leaves a record pointing at a missing blob.
    """
    pending = db.info.get(_PENDING_BLOB_DELETES)
    if pending is not None:
        return pending

    pending = db.info[_PENDING_BLOB_DELETES] = []
    sync_session = db.sync_session

    @event.listens_for(sync_session, "after_commit")
    def _delete_committed_blobs(session):
        while pending:
            blob_store, storage_id = pending.pop()
            try:
                blob_store.delete(storage_id)
            except OSError:
                logger.exception("Failed to delete blob %s", storage_id)

    @event.listens_for(sync_session, "after_rollback")
    def _keep_rolled_back_blobs(session):
        pending.clear()

    return pending


class FileService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore | None = None):
        self.db = db
        self.blob_store = blob_store or LocalBlobStore()
        self.access = AccessService(db)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def generate_upload_url(self) -> str:
        return self.blob_store.generate_upload_url()

    async def save_file(
        self,
        principal: Principal,
        storage_id: str,
        ui_name: str,
        size_bytes: int,
        content_type: str | None = None,
        entity_type: FileEntityType | None = None,
        entity_id: uuid.UUID | None = None,
    ) -> FileRecord:
        """Record metadata for an uploaded blob, optionally linking it right away."""
        if (entity_type is None) != (entity_id is None):
            raise BusinessRuleException("entity_type and entity_id must be given together")

        record = FileRecord(
            storage_id=storage_id,
            ui_name=ui_name,
            size_bytes=size_bytes,
            content_type=content_type,
            uploaded_by_user_id=principal.user_id,
        )
        self.db.add(record)
        await self.db.flush()

        order_id = None
        if entity_type is not None:
            await self.link_files(principal, [record.id], entity_type, entity_id)
            order_id = await self._order_id_for_entity(entity_type, entity_id)

        await AuditService(self.db).record(
            actor_user_id=principal.user_id,
            entity=ENTITY_FILE,
            entity_id=record.id,
            action=ACTION_FILE_UPLOADED,
            metadata={
                "ui_name": ui_name,
                "size_bytes": size_bytes,
                "entity_type": entity_type.value if entity_type else None,
                "entity_id": str(entity_id) if entity_id else None,
            },
            order_id=order_id,
        )
        logger.info("Saved file %s uploaded by %s", record.id, principal.user_id)
        return record

    # ------------------------------------------------------------------
    # Linkage
    # ------------------------------------------------------------------

    async def link_files(
        self,
        principal: Principal,
        file_ids: list[uuid.UUID],
        entity_type: FileEntityType,
        entity_id: uuid.UUID,
    ) -> list[FileRecord]:
        """Attach unlinked files to an entity the caller may write to."""
        if not file_ids:
            return []

        order_id = await self._order_id_for_entity(entity_type, entity_id)
        await self.access.require_write(order_id, principal)

        result = await self.db.execute(select(FileRecord).where(FileRecord.id.in_(file_ids)))
        records = {r.id: r for r in result.scalars().all()}

        now = utcnow()
        linked: list[FileRecord] = []
        for file_id in dict.fromkeys(file_ids):
            record = records.get(file_id)
            if record is None:
                raise NotFoundException(f"File {file_id} not found")
            if record.uploaded_by_user_id != principal.user_id:
                raise ForbiddenException("Only the uploader can link a file")
            if record.entity_type is not None:
                if record.entity_type == entity_type and record.entity_id == entity_id:
                    linked.append(record)
                    continue
                raise BusinessRuleException(f"File {file_id} is already linked to another record")
            record.entity_type = entity_type
            record.entity_id = entity_id
            record.linked_at = now
            linked.append(record)

        await self.db.flush()
        return linked

    async def _order_id_for_entity(
        self, entity_type: FileEntityType, entity_id: uuid.UUID
    ) -> uuid.UUID:
        """Resolve the order whose ACL governs a file's entity."""
        if entity_type in (FileEntityType.ORDER, FileEntityType.FULFILMENT):
            return entity_id

        if entity_type == FileEntityType.MESSAGE:
            query = (
                select(Chat.order_id)
                .join(Message, Message.chat_id == Chat.id)
                .where(Message.id == entity_id)
            )
        elif entity_type == FileEntityType.DISPUTE:
            query = select(Dispute.order_id).where(Dispute.id == entity_id)
        else:
            raise BusinessRuleException(f"Unsupported entity type {entity_type}")

        order_id = (await self.db.execute(query)).scalar_one_or_none()
        if order_id is None:
            raise NotFoundException(f"{entity_type.value.capitalize()} {entity_id} not found")
        return order_id

    # ------------------------------------------------------------------
    # Read / delete
    # ------------------------------------------------------------------

    async def get_file(self, file_id: uuid.UUID) -> FileRecord:
        result = await self.db.execute(select(FileRecord).where(FileRecord.id == file_id))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundException(f"File {file_id} not found")
        return record

    async def _require_file_read(self, principal: Principal, record: FileRecord) -> None:
        if record.uploaded_by_user_id == principal.user_id:
            return
        if record.entity_type is None:
            raise ForbiddenException("You do not have access to this file")
        order_id = await self._order_id_for_entity(record.entity_type, record.entity_id)
        order = await self.access.get_order(order_id)
        if not can_read(principal, order):
            raise ForbiddenException("You do not have access to this file")

    async def get_file_url(self, principal: Principal, file_id: uuid.UUID) -> str:
        record = await self.get_file(file_id)
        await self._require_file_read(principal, record)
        return self.blob_store.get_url(record.storage_id)

    async def list_files_for_entity(
        self, principal: Principal, entity_type: FileEntityType, entity_id: uuid.UUID
    ) -> list[FileRecord]:
        order_id = await self._order_id_for_entity(entity_type, entity_id)
        await self.access.require_read(order_id, principal)
        result = await self.db.execute(
            select(FileRecord)
            .where(FileRecord.entity_type == entity_type, FileRecord.entity_id == entity_id)
            .order_by(FileRecord.created_at.asc())
        )
        return list(result.scalars().all())

    async def delete_file(self, principal: Principal, file_id: uuid.UUID) -> None:
        record = await self.get_file(file_id)
        if record.uploaded_by_user_id != principal.user_id:
            raise ForbiddenException("Only the uploader can delete a file")
        await self._purge([record])
        logger.info("Deleted file %s", file_id)

    async def delete_files(self, file_ids: list[uuid.UUID]) -> int:
        """Remove files by id without an access check (retention sweeps)."""
        if not file_ids:
            return 0
        result = await self.db.execute(select(FileRecord).where(FileRecord.id.in_(file_ids)))
        records = list(result.scalars().all())
        await self._purge(records)
        return len(records)

    async def delete_unlinked_before(self, cutoff: datetime) -> int:
        """Reclaim files that were uploaded but never attached to an entity."""
        result = await self.db.execute(
            select(FileRecord).where(
                FileRecord.entity_type.is_(None),
                FileRecord.created_at < cutoff,
            )
        )
        records = list(result.scalars().all())
        await self._purge(records)
        return len(records)

    async def _purge(self, records: list[FileRecord]) -> None:
        storage_ids = [record.storage_id for record in records]
        for record in records:
            await self.db.delete(record)
        await self.db.flush()
        _hook_blob_deletes(self.db).extend((self.blob_store, sid) for sid in storage_ids)
