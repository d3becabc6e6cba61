"""Order chat service — one thread per order, gated by the order's ACL."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import BusinessRuleException, ForbiddenException, ValidationException
from src.models.chat import Chat, Message
from src.models.enums import FileEntityType
from src.models.file_record import FileRecord
from src.models.order import Order
from src.modules.access.service import AccessService
from src.modules.files.service import FileService
from src.modules.files.storage import BlobStore
from src.modules.identity.roles import Principal

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, db: AsyncSession, blob_store: BlobStore | None = None):
        self.db = db
        self.access = AccessService(db)
        self.files = FileService(db, blob_store)

    async def _find_chat(self, order_id: uuid.UUID) -> Chat | None:
        result = await self.db.execute(select(Chat).where(Chat.order_id == order_id))
        return result.scalar_one_or_none()

    async def get_or_create_chat(self, order_id: uuid.UUID, principal: Principal) -> Chat:
        await self.access.require_read(order_id, principal)
        chat = await self._find_chat(order_id)
        if chat is None:
            chat = Chat(order_id=order_id, is_open=True, opened_at=utcnow())
            self.db.add(chat)
            await self.db.flush()
            logger.info("Opened chat %s for order %s", chat.id, order_id)
        return chat

    async def list_messages(self, order_id: uuid.UUID, principal: Principal) -> list[Message]:
        """Messages oldest first; marks each as viewed by the caller."""
        await self.access.require_read(order_id, principal)
        chat = await self._find_chat(order_id)
        if chat is None:
            return []

        result = await self.db.execute(
            select(Message)
            .where(Message.chat_id == chat.id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        messages = list(result.scalars().all())

        viewer = str(principal.user_id)
        for message in messages:
            if viewer not in message.viewed_by_user_ids:
                message.viewed_by_user_ids = [*message.viewed_by_user_ids, viewer]
        await self.db.flush()
        return messages

    async def send_message(
        self,
        order_id: uuid.UUID,
        principal: Principal,
        content: str,
        attachment_file_ids: list[uuid.UUID] | None = None,
    ) -> Message:
        await self.access.require_write(order_id, principal)
        file_ids = list(dict.fromkeys(attachment_file_ids or []))
        content = (content or "").strip()
        if not content and not file_ids:
            raise ValidationException("A message needs text or at least one attachment")

        chat = await self._find_chat(order_id)
        if chat is None:
            chat = Chat(order_id=order_id, is_open=True, opened_at=utcnow())
            self.db.add(chat)
            await self.db.flush()
        if not chat.is_open:
            raise BusinessRuleException("Chat is closed")

        message = Message(
            chat_id=chat.id,
            sender_user_id=principal.user_id,
            content=content,
            attachment_file_ids=[str(f) for f in file_ids],
            viewed_by_user_ids=[str(principal.user_id)],
            created_at=utcnow(),
        )
        self.db.add(message)
        await self.db.flush()

        await self.files.link_files(principal, file_ids, FileEntityType.MESSAGE, message.id)
        logger.info("Message %s posted to order %s chat", message.id, order_id)
        return message

    async def set_chat_open(
        self, order_id: uuid.UUID, principal: Principal, is_open: bool
    ) -> Chat:
        """Close or reopen the thread.  Owners and the picking staff member only."""
        order = await self.access.require_read(order_id, principal)
        if not principal.is_owner and not (
            principal.is_staff and order.picked_by_staff_user_id == principal.user_id
        ):
            raise ForbiddenException("Only owners or the picking staff member can close a chat")

        chat = await self.get_or_create_chat(order_id, principal)
        chat.is_open = is_open
        chat.closed_at = None if is_open else utcnow()
        await self.db.flush()
        return chat

    async def close_chat(self, order_id: uuid.UUID, principal: Principal) -> Chat:
        return await self.set_chat_open(order_id, principal, False)

    async def reopen_chat(self, order_id: uuid.UUID, principal: Principal) -> Chat:
        return await self.set_chat_open(order_id, principal, True)

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    async def purge_messages_for_orders_before(self, cutoff: datetime) -> dict:
        """Delete messages (and their files) of orders created before ``cutoff``.

        Chat rows are kept so threads can continue.
        """
        stats = {"chats": 0, "messages": 0, "files": 0}
        result = await self.db.execute(
            select(Chat).join(Order, Order.id == Chat.order_id).where(Order.created_at < cutoff)
        )
        for chat in result.scalars().all():
            messages = (
                await self.db.execute(select(Message).where(Message.chat_id == chat.id))
            ).scalars().all()
            if not messages:
                continue
            stats["chats"] += 1

            message_ids = [m.id for m in messages]
            file_ids = (
                await self.db.execute(
                    select(FileRecord.id).where(
                        FileRecord.entity_type == FileEntityType.MESSAGE,
                        FileRecord.entity_id.in_(message_ids),
                    )
                )
            ).scalars().all()
            stats["files"] += await self.files.delete_files(list(file_ids))

            for message in messages:
                await self.db.delete(message)
            stats["messages"] += len(messages)
            await self.db.flush()

        return stats
