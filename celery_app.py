"""Celery application configuration for Pokisham background tasks."""

from celery import Celery
from celery.schedules import crontab

from src.config import settings

celery = Celery("pokisham")

celery.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_result_backend,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # --- Queue routing per job type ---
    task_routes={
        "src.modules.notification.tasks.*": {"queue": "notifications"},
        "src.modules.events.tasks.process_outbox": {"queue": "event-outbox"},
        "src.modules.events.tasks.cleanup_processed_events": {"queue": "event-outbox"},
        "src.modules.assignment.tasks.expire_stale_offers": {"queue": "assignment"},
    },
    # --- Reliability settings ---
    task_default_retry_delay=60,
    task_max_retries=3,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86400,  # 24 hours
    # --- Broker transport options (Redis reliability) ---
    broker_transport_options={
        "max_retries": 10,
        "interval_start": 0.2,
        "interval_step": 0.5,
        "interval_max": 5.0,
        "retry_on_timeout": True,
        "visibility_timeout": 3600,
    },
    # --- Beat schedule ---
    beat_schedule={
        "process-event-outbox": {
            "task": "src.modules.events.tasks.process_outbox",
            "schedule": settings.event_outbox_poll_seconds,
        },
        "expire-stale-broadcast-offers": {
            "task": "src.modules.assignment.tasks.expire_stale_offers",
            "schedule": settings.broadcast_offer_expiry_poll_seconds,
        },
        "cleanup-processed-events-daily": {
            "task": "src.modules.events.tasks.cleanup_processed_events",
            "schedule": crontab(hour=3, minute=30),
        },
    },
)

celery.autodiscover_tasks([
    "src.modules.events",
    "src.modules.notification",
    "src.modules.assignment",
])
