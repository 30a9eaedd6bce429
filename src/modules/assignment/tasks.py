"""Celery tasks for broadcast offer housekeeping."""

import asyncio
import logging

from celery_app import celery
from src.database.engine import async_session, engine
from src.modules.assignment.service import AssignmentService

logger = logging.getLogger(__name__)


async def _expire_stale_offers() -> int:
    try:
        async with async_session() as session:
            expired = await AssignmentService(session).expire_stale_offers()
            await session.commit()
            return expired
    finally:
        await engine.dispose()


@celery.task(name="src.modules.assignment.tasks.expire_stale_offers")
def expire_stale_offers():
    """Close broadcast offers whose claim window has passed."""
    expired = asyncio.run(_expire_stale_offers())
    return {"expired": expired}
