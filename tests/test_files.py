"""Tests for FileService and the local blob store."""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from src.database.base import utcnow
from src.exceptions import (
    BusinessRuleException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from src.models.enums import FileEntityType, OrderSla, OrderStatus
from src.models.file_record import FileRecord
from src.modules.files.service import FileService
from src.modules.files.tasks import cleanup_unlinked_files_async
from src.modules.order.schemas import OrderCreate
from src.modules.order.service import OrderService


async def _upload(files: FileService, blob_store, principal, name="proof.pdf", **kwargs):
    storage_id = blob_store.put_blob(files.generate_upload_url(), b"%PDF-1.7")
    return await files.save_file(principal, storage_id, name, 8, "application/pdf", **kwargs)


class TestLocalBlobStore:
    def test_put_then_get_url(self, blob_store):
        url = blob_store.generate_upload_url()
        storage_id = blob_store.put_blob(url, b"hello")
        assert blob_store.get_url(storage_id) == f"http://test/blobs/{storage_id}"

    def test_foreign_upload_url_rejected(self, blob_store):
        with pytest.raises(ValidationException):
            blob_store.put_blob("http://elsewhere/upload/abc", b"x")

    def test_path_traversal_rejected(self, blob_store):
        with pytest.raises(ValidationException):
            blob_store.put_blob("http://test/blobs/upload/../../etc", b"x")

    def test_deleted_blob_has_no_url(self, blob_store):
        storage_id = blob_store.put_blob(blob_store.generate_upload_url(), b"x")
        blob_store.delete(storage_id)
        with pytest.raises(NotFoundException):
            blob_store.get_url(storage_id)


class TestSaveAndLink:
    @pytest.mark.asyncio
    async def test_upload_starts_unlinked(self, db, make, blob_store):
        team = await make.team()
        member = await make.member(team)
        record = await _upload(FileService(db, blob_store), blob_store, await make.principal(member))

        assert record.entity_type is None
        assert record.entity_id is None
        assert record.uploaded_by_user_id == member.id

    @pytest.mark.asyncio
    async def test_save_with_entity_links_immediately(self, db, make, blob_store):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)

        record = await _upload(
            FileService(db, blob_store),
            blob_store,
            await make.principal(member),
            entity_type=FileEntityType.ORDER,
            entity_id=order.id,
        )

        assert record.entity_type == FileEntityType.ORDER
        assert record.entity_id == order.id
        assert record.linked_at is not None
        assert await make.audit_count(order.id, "file_uploaded") == 1

    @pytest.mark.asyncio
    async def test_entity_type_without_id_rejected(self, db, make, blob_store):
        member = await make.member(await make.team())
        with pytest.raises(BusinessRuleException):
            await _upload(
                FileService(db, blob_store),
                blob_store,
                await make.principal(member),
                entity_type=FileEntityType.ORDER,
            )

    @pytest.mark.asyncio
    async def test_only_uploader_can_link(self, db, make, blob_store):
        team = await make.team()
        uploader = await make.member(team)
        admin = await make.admin(team)
        order = await make.order(team, admin)
        files = FileService(db, blob_store)
        record = await _upload(files, blob_store, await make.principal(uploader))

        with pytest.raises(ForbiddenException, match="uploader"):
            await files.link_files(
                await make.principal(admin), [record.id], FileEntityType.ORDER, order.id
            )

    @pytest.mark.asyncio
    async def test_link_requires_write_access(self, db, make, blob_store):
        team = await make.team()
        creator = await make.member(team)
        bystander = await make.member(team)
        order = await make.order(team, creator)
        files = FileService(db, blob_store)
        principal = await make.principal(bystander)
        record = await _upload(files, blob_store, principal)

        with pytest.raises(ForbiddenException):
            await files.link_files(principal, [record.id], FileEntityType.ORDER, order.id)

    @pytest.mark.asyncio
    async def test_file_cannot_move_between_entities(self, db, make, blob_store):
        team = await make.team()
        creator = await make.member(team)
        category = await make.category()
        first = await make.order(team, creator, category=category)
        second = await make.order(team, creator, category=category)
        files = FileService(db, blob_store)
        principal = await make.principal(creator)
        record = await _upload(files, blob_store, principal)

        await files.link_files(principal, [record.id], FileEntityType.ORDER, first.id)
        # Relinking to the same entity is harmless
        await files.link_files(principal, [record.id], FileEntityType.ORDER, first.id)

        with pytest.raises(BusinessRuleException, match="already linked"):
            await files.link_files(principal, [record.id], FileEntityType.ORDER, second.id)

    @pytest.mark.asyncio
    async def test_unknown_file_not_found(self, db, make, blob_store):
        team = await make.team()
        creator = await make.member(team)
        order = await make.order(team, creator)

        with pytest.raises(NotFoundException):
            await FileService(db, blob_store).link_files(
                await make.principal(creator), [uuid.uuid4()], FileEntityType.ORDER, order.id
            )

    @pytest.mark.asyncio
    async def test_order_creation_links_attachments(self, db, make, blob_store):
        team = await make.team()
        member = await make.member(team)
        category = await make.category()
        principal = await make.principal(member)
        record = await _upload(FileService(db, blob_store), blob_store, principal, "cart.png")

        order = await OrderService(db, blob_store).create_order(
            principal,
            OrderCreate(
                team_id=team.id,
                category_id=category.id,
                sla=OrderSla.WITHIN_24H,
                cart_value_usd=Decimal("12.00"),
                merchant="Bakery",
                customer_name="Sam",
                country="PT",
                city="Lisbon",
                attachment_file_ids=[record.id],
            ),
        )

        assert order.attachment_file_ids == [str(record.id)]
        assert record.entity_type == FileEntityType.ORDER
        assert record.entity_id == order.id


class TestFileAccess:
    @pytest.mark.asyncio
    async def test_reader_gets_url_outsider_does_not(self, db, make, blob_store):
        team = await make.team()
        creator = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, creator, status=OrderStatus.PICKED, picked_by=staff)
        outsider = await make.member(await make.team())
        files = FileService(db, blob_store)
        record = await _upload(
            files,
            blob_store,
            await make.principal(creator),
            entity_type=FileEntityType.ORDER,
            entity_id=order.id,
        )

        url = await files.get_file_url(await make.principal(staff), record.id)
        assert url == f"http://test/blobs/{record.storage_id}"

        with pytest.raises(ForbiddenException):
            await files.get_file_url(await make.principal(outsider), record.id)

    @pytest.mark.asyncio
    async def test_unlinked_file_visible_only_to_uploader(self, db, make, blob_store):
        owner = await make.owner()
        member = await make.member(await make.team())
        files = FileService(db, blob_store)
        record = await _upload(files, blob_store, await make.principal(member))

        assert await files.get_file_url(await make.principal(member), record.id)
        with pytest.raises(ForbiddenException):
            await files.get_file_url(await make.principal(owner), record.id)

    @pytest.mark.asyncio
    async def test_list_files_for_order(self, db, make, blob_store):
        team = await make.team()
        creator = await make.member(team)
        order = await make.order(team, creator)
        files = FileService(db, blob_store)
        principal = await make.principal(creator)
        await _upload(
            files, blob_store, principal, "a.pdf",
            entity_type=FileEntityType.ORDER, entity_id=order.id,
        )
        await _upload(files, blob_store, principal, "b.pdf")

        listed = await files.list_files_for_entity(principal, FileEntityType.ORDER, order.id)
        assert [f.ui_name for f in listed] == ["a.pdf"]

    @pytest.mark.asyncio
    async def test_delete_removes_blob(self, db, make, blob_store):
        member = await make.member(await make.team())
        files = FileService(db, blob_store)
        principal = await make.principal(member)
        record = await _upload(files, blob_store, principal)
        storage_id = record.storage_id

        await files.delete_file(principal, record.id)

        with pytest.raises(NotFoundException):
            await files.get_file(record.id)
        # Blob stays until the transaction commits
        assert blob_store.get_url(storage_id)

        await db.commit()
        with pytest.raises(NotFoundException):
            blob_store.get_url(storage_id)

    @pytest.mark.asyncio
    async def test_rolled_back_delete_keeps_blob(self, db, make, blob_store):
        member = await make.member(await make.team())
        files = FileService(db, blob_store)
        principal = await make.principal(member)
        record = await _upload(files, blob_store, principal)
        file_id, storage_id = record.id, record.storage_id
        await db.commit()

        await files.delete_file(principal, file_id)
        await db.rollback()

        restored = await files.get_file(file_id)
        assert restored.storage_id == storage_id
        assert await files.get_file_url(principal, file_id) == f"http://test/blobs/{storage_id}"

        # A later commit on the same session must not remove the kept blob
        await db.commit()
        assert blob_store.get_url(storage_id)


class TestOrphanSweep:
    @pytest.mark.asyncio
    async def test_only_old_unlinked_files_removed(self, db, make, blob_store, session_factory):
        team = await make.team()
        creator = await make.member(team)
        order = await make.order(team, creator)
        files = FileService(db, blob_store)
        principal = await make.principal(creator)

        stale = await _upload(files, blob_store, principal, "stale.pdf")
        fresh = await _upload(files, blob_store, principal, "fresh.pdf")
        linked = await _upload(
            files, blob_store, principal, "linked.pdf",
            entity_type=FileEntityType.ORDER, entity_id=order.id,
        )
        two_hours_ago = utcnow() - timedelta(hours=2)
        stale.created_at = two_hours_ago
        linked.created_at = two_hours_ago
        await db.commit()

        stats = await cleanup_unlinked_files_async(
            timedelta(minutes=60), session_factory, blob_store
        )

        assert stats == {"deleted": 1}
        remaining = (await db.execute(select(FileRecord.ui_name))).scalars().all()
        assert sorted(remaining) == ["fresh.pdf", "linked.pdf"]
        with pytest.raises(NotFoundException):
            blob_store.get_url(stale.storage_id)
        assert blob_store.get_url(fresh.storage_id)
