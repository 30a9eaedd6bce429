"""OutboxService — writes domain events inside the caller's transaction."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)


class OutboxService:
    """Publishes events to the outbox and reads them back for inspection."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str | uuid.UUID,
        payload: dict,
    ) -> EventOutbox:
        """Add a PENDING event; it commits or rolls back with the surrounding change."""
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=str(aggregate_id),
            payload=payload,
            status=EventStatus.PENDING,
        )
        self.session.add(event)
        await self.session.flush()
        logger.debug("Queued %s for %s/%s", event_type, aggregate_type, aggregate_id)
        return event

    async def get_events_for_aggregate(
        self, aggregate_type: str, aggregate_id: str | uuid.UUID
    ) -> list[EventOutbox]:
        result = await self.session.execute(
            select(EventOutbox)
            .where(
                EventOutbox.aggregate_type == aggregate_type,
                EventOutbox.aggregate_id == str(aggregate_id),
            )
            .order_by(EventOutbox.created_at.asc())
        )
        return list(result.scalars().all())
