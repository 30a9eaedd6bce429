"""Outbox handlers that turn domain events into notification tasks."""

import logging

from src.models.enums import OrderStatus
from src.modules.assignment.constants import EVENT_ORDER_ASSIGNED, EVENT_ORDER_BROADCAST
from src.modules.events.handlers import EventHandlerRegistry
from src.modules.notification import tasks
from src.modules.status.constants import EVENT_ORDER_STATUS_CHANGED
from src.modules.tenant.constants import EVENT_TENANT_STATUS_CHANGED

logger = logging.getLogger(__name__)

# Statuses the customer hears about automatically; the rest only on request
AUTO_NOTIFY_STATUSES = frozenset(
    {
        OrderStatus.SHIPPED.value,
        OrderStatus.OUT_FOR_DELIVERY.value,
        OrderStatus.DELIVERED.value,
        OrderStatus.CANCELLED.value,
    }
)


def on_order_broadcast(payload: dict) -> None:
    tasks.send_broadcast_offers.delay(payload)


def on_order_assigned(payload: dict) -> None:
    tasks.send_assignment_notices.delay(payload)


def on_order_status_changed(payload: dict) -> None:
    if payload.get("to_status") not in AUTO_NOTIFY_STATUSES:
        return
    tasks.send_customer_status.delay(payload["order_id"], payload["to_status"], "email")


def on_tenant_status_changed(payload: dict) -> None:
    tasks.send_tenant_status_notice.delay(payload)


def register_handlers() -> None:
    EventHandlerRegistry.register(EVENT_ORDER_BROADCAST, on_order_broadcast)
    EventHandlerRegistry.register(EVENT_ORDER_ASSIGNED, on_order_assigned)
    EventHandlerRegistry.register(EVENT_ORDER_STATUS_CHANGED, on_order_status_changed)
    EventHandlerRegistry.register(EVENT_TENANT_STATUS_CHANGED, on_tenant_status_changed)
    logger.debug("Notification handlers registered")
