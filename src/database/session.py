import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from src.database.engine import async_session

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: one transaction per request.

    Services only flush; the request commits here when the endpoint returns
    and rolls back when it raises, so a failed settlement or a lost claim
    leaves nothing behind.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.debug("Rolled back request transaction: %s", exc)
            raise
