"""Celery tasks for chat retention."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from celery_app import celery
from src.config import settings
from src.database.base import utcnow
from src.database.engine import async_session
from src.modules.chat.service import ChatService
from src.modules.files.storage import BlobStore

logger = logging.getLogger(__name__)


async def cleanup_old_chats_async(
    retention: timedelta | None = None,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
    blob_store: BlobStore | None = None,
) -> dict:
    """Delete messages (and attached files) of orders past the retention window."""
    if retention is None:
        retention = timedelta(days=settings.chat_retention_days)
    cutoff = utcnow() - retention

    async with session_factory() as session:
        stats = await ChatService(session, blob_store).purge_messages_for_orders_before(cutoff)
        await session.commit()

    return stats


@celery.task(name="src.modules.chat.tasks.cleanup_old_chats")
def cleanup_old_chats():
    """Purge chat history of orders older than chat_retention_days."""
    stats = asyncio.run(cleanup_old_chats_async())
    logger.info("cleanup_old_chats complete: %s", stats)
    return stats
