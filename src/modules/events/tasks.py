"""Celery tasks for event outbox processing."""

from celery_app import celery
from src.config import settings
from src.modules.events.outbox_processor import OutboxProcessor
from src.modules.notification.handlers import register_handlers

register_handlers()


@celery.task(name="src.modules.events.tasks.process_outbox")
def process_outbox():
    """Dispatch a batch of pending order and tenant events to their handlers."""
    return OutboxProcessor().process_batch(settings.event_outbox_batch_size)


@celery.task(name="src.modules.events.tasks.cleanup_processed_events")
def cleanup_processed_events():
    """Delete expired processed_events and old completed outbox entries."""
    return OutboxProcessor().cleanup_expired()
