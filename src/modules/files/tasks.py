"""Celery tasks for orphaned file cleanup."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from celery_app import celery
from src.config import settings
from src.database.base import utcnow
from src.database.engine import async_session
from src.modules.files.service import FileService
from src.modules.files.storage import BlobStore

logger = logging.getLogger(__name__)


async def cleanup_unlinked_files_async(
    ttl: timedelta | None = None,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
    blob_store: BlobStore | None = None,
) -> dict:
    """Remove uploads that were never attached to an order, message or dispute."""
    if ttl is None:
        ttl = timedelta(minutes=settings.unlinked_file_ttl_minutes)
    cutoff = utcnow() - ttl

    async with session_factory() as session:
        deleted = await FileService(session, blob_store).delete_unlinked_before(cutoff)
        await session.commit()

    return {"deleted": deleted}


@celery.task(name="src.modules.files.tasks.cleanup_unlinked_files")
def cleanup_unlinked_files():
    """Reclaim unlinked uploads older than unlinked_file_ttl_minutes."""
    stats = asyncio.run(cleanup_unlinked_files_async())
    logger.info("cleanup_unlinked_files complete: %s", stats)
    return stats
