"""Celery tasks for order lifecycle automation."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from celery_app import celery
from src.config import settings
from src.database.base import utcnow
from src.database.engine import async_session
from src.modules.order.service import OrderService

logger = logging.getLogger(__name__)


async def auto_cancel_stale_orders_async(
    threshold: timedelta | None = None,
    session_factory: async_sessionmaker[AsyncSession] = async_session,
) -> dict:
    """Cancel SUBMITTED orders nobody picked within ``threshold``.

    Each candidate gets its own session so one failure never rolls back
    another order's cancellation.
    """
    if threshold is None:
        threshold = timedelta(minutes=settings.auto_cancel_threshold_minutes)

    stats = {"checked": 0, "cancelled": 0, "skipped": 0, "errors": 0}
    cutoff = utcnow() - threshold

    async with session_factory() as session:
        order_ids = await OrderService(session).find_stale_order_ids(cutoff)
    stats["checked"] = len(order_ids)

    for order_id in order_ids:
        try:
            async with session_factory() as session:
                cancelled = await OrderService(session).auto_cancel_order(order_id, cutoff)
                await session.commit()
        except Exception:
            logger.exception("Error auto-cancelling order %s", order_id)
            stats["errors"] += 1
            continue

        if cancelled:
            stats["cancelled"] += 1
        else:
            stats["skipped"] += 1

    return stats


# ---------------------------------------------------------------------------
# Celery task definitions
# ---------------------------------------------------------------------------


@celery.task(name="src.modules.order.tasks.auto_cancel_stale_orders")
def auto_cancel_stale_orders():
    """Cancel unpicked orders older than the configured threshold."""
    stats = asyncio.run(auto_cancel_stale_orders_async())
    logger.info("auto_cancel_stale_orders complete: %s", stats)
    return stats
