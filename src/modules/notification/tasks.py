"""Celery tasks for customer and tenant notifications.

Each task opens its own session, sends, records and commits. Failures are
logged and recorded; the tasks do not retry, matching the dispatcher's
no-internal-retry contract.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from celery_app import celery
from src.config import settings
from src.database.engine import async_session, engine
from src.exceptions import NotificationFailureException
from src.models.enums import OrderStatus
from src.models.order import Order
from src.models.tenant import Tenant
from src.modules.notification import templates
from src.modules.notification.dispatcher import NotificationDispatcher
from src.modules.notification.providers.factory import close_all_providers

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Async implementations (take a session so tests can drive them directly)
# ---------------------------------------------------------------------------


async def _tenants_by_id(db: AsyncSession, tenant_ids: list[str]) -> list[Tenant]:
    if not tenant_ids:
        return []
    ids = [uuid.UUID(t) for t in tenant_ids]
    return list(await db.scalars(select(Tenant).where(Tenant.id.in_(ids))))


async def _send_to_tenants(
    dispatcher: NotificationDispatcher,
    tenants: list[Tenant],
    subject: str,
    text: str,
    context: dict,
) -> dict:
    stats = {"sent": 0, "failed": 0}
    for tenant in tenants:
        try:
            await dispatcher.send_tenant_notice(
                tenant.email,
                subject.format(**context),
                text.format(business_name=tenant.business_name, **context),
            )
            stats["sent"] += 1
        except NotificationFailureException as exc:
            logger.warning("Tenant notice to %s failed: %s", tenant.email, exc.message)
            stats["failed"] += 1
    return stats


async def notify_customer_status(
    db: AsyncSession,
    order_id: str,
    status: str,
    channel: str = "email",
    dispatcher: NotificationDispatcher | None = None,
) -> dict:
    dispatcher = dispatcher or NotificationDispatcher(db)
    result = await dispatcher.notify(uuid.UUID(order_id), channel, status=OrderStatus(status))
    return {r.channel.value: r.outcome.value for r in result.channels}


async def notify_broadcast_candidates(
    db: AsyncSession, payload: dict, dispatcher: NotificationDispatcher | None = None
) -> dict:
    dispatcher = dispatcher or NotificationDispatcher(db)
    order = await db.get(Order, uuid.UUID(payload["order_id"]))
    if order is None:
        logger.warning("Broadcast notice skipped; order %s is gone", payload["order_id"])
        return {"sent": 0, "failed": 0}
    tenants = await _tenants_by_id(db, payload.get("tenant_ids", []))
    context = {
        "order_number": order.order_number,
        "total_price": templates.rupees(order.total_price),
        "expires_at": payload.get("expires_at", ""),
        "store_name": settings.store_name,
    }
    return await _send_to_tenants(
        dispatcher, tenants, templates.TENANT_OFFER_SUBJECT, templates.TENANT_OFFER_TEXT, context
    )


async def notify_assignment(
    db: AsyncSession, payload: dict, dispatcher: NotificationDispatcher | None = None
) -> dict:
    """Tell the customer their order was accepted and the losing candidates it is gone."""
    dispatcher = dispatcher or NotificationDispatcher(db)
    order_id = uuid.UUID(payload["order_id"])
    customer = await dispatcher.notify(order_id, "email", status=OrderStatus.ACCEPTED)

    losers = await _tenants_by_id(db, payload.get("losing_tenant_ids", []))
    context = {"order_number": payload["order_number"], "store_name": settings.store_name}
    stats = await _send_to_tenants(
        dispatcher, losers, templates.TENANT_LOST_SUBJECT, templates.TENANT_LOST_TEXT, context
    )
    stats["customer"] = customer.channels[0].outcome.value
    return stats


async def notify_tenant_status(
    db: AsyncSession, payload: dict, dispatcher: NotificationDispatcher | None = None
) -> dict:
    dispatcher = dispatcher or NotificationDispatcher(db)
    tenants = await _tenants_by_id(db, [payload["tenant_id"]])
    reason = payload.get("reason")
    context = {
        "status": payload["to_status"],
        "store_name": settings.store_name,
        "reason_line": f"\n\nReason: {reason}" if reason else "",
    }
    return await _send_to_tenants(
        dispatcher, tenants, templates.TENANT_STATUS_SUBJECT, templates.TENANT_STATUS_TEXT, context
    )


async def _run_in_session(func, *args) -> dict:
    try:
        async with async_session() as session:
            result = await func(session, *args)
            await session.commit()
            return result
    finally:
        await close_all_providers()
        await engine.dispose()


# ---------------------------------------------------------------------------
# Celery entry points
# ---------------------------------------------------------------------------


@celery.task(name="src.modules.notification.tasks.send_customer_status")
def send_customer_status(order_id: str, status: str, channel: str = "email"):
    """Email the customer about a status change."""
    return asyncio.run(_run_in_session(notify_customer_status, order_id, status, channel))


@celery.task(name="src.modules.notification.tasks.send_broadcast_offers")
def send_broadcast_offers(payload: dict):
    """Email every broadcast candidate that an order is up for grabs."""
    return asyncio.run(_run_in_session(notify_broadcast_candidates, payload))


@celery.task(name="src.modules.notification.tasks.send_assignment_notices")
def send_assignment_notices(payload: dict):
    return asyncio.run(_run_in_session(notify_assignment, payload))


@celery.task(name="src.modules.notification.tasks.send_tenant_status_notice")
def send_tenant_status_notice(payload: dict):
    return asyncio.run(_run_in_session(notify_tenant_status, payload))
