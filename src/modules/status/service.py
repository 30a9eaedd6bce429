"""Status state machine — validates and applies order status transitions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import (
    ConcurrentModificationException,
    ForbiddenException,
    IllegalTransitionException,
    NotOwnerException,
    ValidationException,
)
from src.models.enums import CallerRole, OrderStatus, PaymentMethod, PaymentStatus
from src.models.order import Order
from src.models.order_status_history import OrderStatusHistory
from src.modules.commission.calculator import CommissionBreakdown
from src.modules.commission.service import CommissionService
from src.modules.events.outbox_service import OutboxService
from src.modules.order.constants import CUSTOMER_CANCELLABLE_STATUSES
from src.modules.order.pricing import assert_order_consistent
from src.modules.order.service import OrderService
from src.modules.status.constants import EVENT_ORDER_STATUS_CHANGED, check_transition
from src.modules.tenancy.auth import AuthenticatedUser
from src.modules.tenant.service import TenantService

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order: Order
    previous_status: OrderStatus
    changed: bool
    commission: CommissionBreakdown | None = None


def _normalise_tracking(tracking_number: str | None) -> str | None:
    if tracking_number is None:
        return None
    tracking_number = tracking_number.strip()
    if not tracking_number:
        raise ValidationException(
            "Tracking number must not be empty",
            details=[{"field": "trackingNumber", "message": "must not be empty"}],
        )
    return tracking_number


class StatusStateMachine:
    """Applies status changes with the caller's role and ownership rules.

    Every change is a conditional UPDATE on (status, version) read at the
    start of the call, so two callers racing on the same order cannot both
    apply a change computed from the same starting point. Moving to
    Delivered settles commission in the same transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)

    async def transition(
        self,
        order_id: uuid.UUID,
        caller: AuthenticatedUser,
        new_status: OrderStatus,
        tracking_number: str | None = None,
        message: str | None = None,
        expected_status: OrderStatus | None = None,
    ) -> TransitionResult:
        if caller.role == CallerRole.CUSTOMER:
            raise ForbiddenException("Customers cannot change order status")

        tracking_number = _normalise_tracking(tracking_number)
        order = await self.orders.get_order(order_id, refresh=True)

        if caller.role == CallerRole.TENANT:
            if order.tenant_id is None or order.tenant_id != caller.tenant_id:
                raise NotOwnerException("This order is not assigned to your store")
            await TenantService(self.db).get_eligible_tenant(caller.tenant_id)

        if expected_status is not None and expected_status != order.order_status:
            raise ConcurrentModificationException(
                f"Order is {order.order_status.value}, expected {expected_status.value}; "
                "reload and try again",
                details=[{"field": "expectedStatus", "message": order.order_status.value}],
            )

        if new_status == order.order_status:
            return TransitionResult(order=order, previous_status=order.order_status, changed=False)

        check_transition(caller.role, order.order_status, new_status)
        return await self._apply(order, caller, new_status, tracking_number, message)

    async def cancel_for_customer(
        self, order_id: uuid.UUID, caller: AuthenticatedUser, reason: str | None = None
    ) -> TransitionResult:
        """Let a customer withdraw their own order before it ships."""
        order = await self.orders.get_order(order_id, refresh=True)
        if order.customer_id is None or order.customer_id != caller.id:
            raise ForbiddenException("Not authorized to cancel this order")
        if order.order_status == OrderStatus.CANCELLED:
            return TransitionResult(order=order, previous_status=order.order_status, changed=False)
        if order.order_status not in CUSTOMER_CANCELLABLE_STATUSES:
            raise IllegalTransitionException(
                f"Cannot cancel an order that is {order.order_status.value}"
            )
        return await self._apply(
            order, caller, OrderStatus.CANCELLED, None, reason or "Cancelled by customer"
        )

    async def _apply(
        self,
        order: Order,
        caller: AuthenticatedUser,
        new_status: OrderStatus,
        tracking_number: str | None,
        message: str | None,
    ) -> TransitionResult:
        previous = order.order_status
        now = utcnow()
        values: dict = {
            "order_status": new_status,
            "status_changed_at": now,
            "updated_at": now,
            "version": Order.version + 1,
        }
        if tracking_number is not None:
            values["tracking_number"] = tracking_number
        if new_status == OrderStatus.DELIVERED:
            values["delivered_at"] = now
            if order.payment_method == PaymentMethod.COD:
                values["payment_status"] = PaymentStatus.COMPLETED
        elif new_status == OrderStatus.CANCELLED:
            values["cancelled_at"] = now
            values["cancellation_reason"] = message

        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.order_status == previous,
                Order.version == order.version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationException(
                f"Order {order.order_number} changed while this update was in flight; "
                "reload and try again"
            )

        commission = None
        if new_status == OrderStatus.DELIVERED:
            commission = await CommissionService(self.db).settle(order)

        order = await self.orders.get_order(order.id, refresh=True)
        assert_order_consistent(order)

        self.db.add(
            OrderStatusHistory(
                order_id=order.id,
                from_status=previous.value,
                to_status=new_status.value,
                action="transition",
                actor_id=caller.id,
                actor_role=caller.role.value,
                tenant_id=order.tenant_id,
                message=message,
            )
        )
        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_STATUS_CHANGED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "tenant_id": str(order.tenant_id) if order.tenant_id else None,
                "from_status": previous.value,
                "to_status": new_status.value,
                "tracking_number": order.tracking_number,
                "actor_role": caller.role.value,
            },
        )
        await self.db.flush()

        logger.info(
            "Order %s: %s -> %s by %s %s",
            order.order_number,
            previous.value,
            new_status.value,
            caller.role.value,
            caller.id,
        )
        return TransitionResult(
            order=order, previous_status=previous, changed=True, commission=commission
        )
