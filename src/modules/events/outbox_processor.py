"""OutboxProcessor — synchronous batch processor for Celery workers."""

import logging
from collections.abc import Callable
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from src.database.base import utcnow
from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox
from src.models.processed_event import ProcessedEvent
from src.modules.events.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)

PROCESSED_EVENT_TTL = timedelta(days=7)
COMPLETED_EVENT_RETENTION = timedelta(days=30)


def _default_session_factory() -> Session:
    from src.database.engine import sync_engine

    return Session(sync_engine)


class OutboxProcessor:
    """Drains pending outbox events and dispatches them to registered handlers.

    Rows are locked with ``SELECT ... FOR UPDATE SKIP LOCKED`` so several
    workers can run concurrently. Each (event, handler) pair is recorded in
    ``processed_events``; when an event is retried after a partial failure,
    handlers that already succeeded are skipped.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self.session_factory = session_factory or _default_session_factory

    def process_batch(self, batch_size: int = 50) -> dict:
        """Process one batch. Returns ``{"processed": n, "failed": m}``."""
        processed_count = 0
        failed_count = 0

        with self.session_factory() as session:
            events = list(
                session.scalars(
                    select(EventOutbox)
                    .where(EventOutbox.status == EventStatus.PENDING)
                    .order_by(EventOutbox.created_at.asc())
                    .limit(batch_size)
                    .with_for_update(skip_locked=True)
                )
            )

            for event in events:
                try:
                    self._dispatch(session, event)
                except Exception as exc:
                    logger.exception(
                        "Failed to process event %s (type=%s)", event.id, event.event_type
                    )
                    event.retry_count += 1
                    event.last_error = str(exc)
                    event.status = (
                        EventStatus.FAILED
                        if event.retry_count >= event.max_retries
                        else EventStatus.PENDING
                    )
                    failed_count += 1
                else:
                    event.status = EventStatus.COMPLETED
                    event.processed_at = utcnow()
                    processed_count += 1
                session.commit()

        if processed_count or failed_count:
            logger.info(
                "Outbox batch done: %d processed, %d failed", processed_count, failed_count
            )
        return {"processed": processed_count, "failed": failed_count}

    def _dispatch(self, session: Session, event: EventOutbox) -> None:
        done = set(
            session.scalars(
                select(ProcessedEvent.handler_name).where(ProcessedEvent.event_id == event.id)
            )
        )
        errors: list[str] = []
        for handler in EventHandlerRegistry.get_handlers(event.event_type):
            name = f"{handler.__module__}.{handler.__name__}"
            if name in done:
                continue
            try:
                handler(event.payload)
            except Exception as exc:
                logger.exception("Handler %s failed for event %s", name, event.id)
                errors.append(f"{name}: {exc}")
                continue
            session.add(
                ProcessedEvent(
                    event_id=event.id,
                    event_type=event.event_type,
                    handler_name=name,
                    expires_at=utcnow() + PROCESSED_EVENT_TTL,
                )
            )
        if errors:
            raise RuntimeError("Handler errors: " + "; ".join(errors))

    def cleanup_expired(self) -> int:
        """Delete expired idempotency rows and old completed events."""
        now = utcnow()
        with self.session_factory() as session:
            total_deleted = session.execute(
                delete(ProcessedEvent).where(ProcessedEvent.expires_at < now)
            ).rowcount
            total_deleted += session.execute(
                delete(EventOutbox).where(
                    EventOutbox.status == EventStatus.COMPLETED,
                    EventOutbox.processed_at < now - COMPLETED_EVENT_RETENTION,
                )
            ).rowcount
            session.commit()

        logger.info("Cleaned up %d expired event records", total_deleted)
        return total_deleted
