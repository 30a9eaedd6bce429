"""Assignment engine — routes an order to exactly one tenant.

Two paths lead to an owner: a platform admin assigns a tenant directly, or
broadcasts the order to a set of approved tenants and the first one to claim
it wins. Both end in the same compare-and-set on ``orders.routed_to_tenant``;
the database decides the winner, so concurrent callers in different
processes cannot both succeed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.base import utcnow
from src.exceptions import (
    AlreadyRoutedException,
    IllegalTransitionException,
    TenantNotEligibleException,
    ValidationException,
)
from src.models.enums import CallerRole, OfferOutcome
from src.models.order import Order
from src.models.order_offer import OrderOffer
from src.models.order_status_history import OrderStatusHistory
from src.modules.assignment.constants import (
    EVENT_ORDER_ASSIGNED,
    EVENT_ORDER_BROADCAST,
    MODE_BROADCAST,
    MODE_CLAIM,
    MODE_DIRECT,
)
from src.modules.events.outbox_service import OutboxService
from src.modules.order.pricing import assert_order_consistent
from src.modules.order.service import OrderService
from src.modules.status.constants import TERMINAL_STATUSES
from src.modules.tenancy.auth import AuthenticatedUser
from src.modules.tenant.service import TenantService

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    mode: str
    order: Order
    losing_tenant_ids: list[uuid.UUID] = field(default_factory=list)


@dataclass
class BroadcastResult:
    order: Order
    broadcast_id: uuid.UUID
    tenant_ids: list[uuid.UUID]
    expires_at: datetime


class AssignmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)
        self.tenants = TenantService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_routable_order(self, order_id: uuid.UUID) -> Order:
        order = await self.orders.get_order(order_id, refresh=True)
        if order.routed_to_tenant:
            raise AlreadyRoutedException(
                f"Order {order.order_number} is already assigned to a tenant"
            )
        if order.order_status in TERMINAL_STATUSES:
            raise IllegalTransitionException(
                f"Order {order.order_number} is {order.order_status.value} and cannot be routed"
            )
        return order

    async def _compare_and_set_route(self, order: Order, tenant_id: uuid.UUID) -> Order:
        """Route ``order`` to ``tenant_id`` iff nobody has routed it yet.

        Single conditional UPDATE; whatever the caller read earlier is not
        trusted. Zero affected rows means another assignment committed first.
        """
        result = await self.db.execute(
            update(Order)
            .where(
                Order.id == order.id,
                Order.routed_to_tenant.is_(False),
                Order.order_status.not_in(list(TERMINAL_STATUSES)),
            )
            .values(
                tenant_id=tenant_id,
                routed_to_tenant=True,
                version=Order.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyRoutedException(
                f"Order {order.order_number} was routed by a concurrent request"
            )
        routed = await self.orders.get_order(order.id, refresh=True)
        assert_order_consistent(routed)
        return routed

    async def _resolve_pending_offers(
        self,
        order_id: uuid.UUID,
        outcome: OfferOutcome,
        exclude_tenant_id: uuid.UUID | None = None,
    ) -> list[uuid.UUID]:
        """Close every pending offer on the order; returns the affected tenant ids."""
        filters = [OrderOffer.order_id == order_id, OrderOffer.outcome == OfferOutcome.PENDING]
        if exclude_tenant_id is not None:
            filters.append(OrderOffer.tenant_id != exclude_tenant_id)

        tenant_ids = list(await self.db.scalars(select(OrderOffer.tenant_id).where(*filters)))
        if tenant_ids:
            await self.db.execute(
                update(OrderOffer)
                .where(*filters)
                .values(outcome=outcome, resolved_at=utcnow(), updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        return tenant_ids

    def _record(
        self,
        order: Order,
        action: str,
        actor_id: uuid.UUID | None,
        actor_role: CallerRole,
        message: str,
    ) -> None:
        self.db.add(
            OrderStatusHistory(
                order_id=order.id,
                from_status=order.order_status.value,
                to_status=order.order_status.value,
                action=action,
                actor_id=actor_id,
                actor_role=actor_role.value,
                tenant_id=order.tenant_id,
                message=message,
            )
        )

    async def _publish_assigned(self, order: Order, mode: str, losers: list[uuid.UUID]) -> None:
        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_ASSIGNED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "tenant_id": str(order.tenant_id),
                "mode": mode,
                "losing_tenant_ids": [str(t) for t in losers],
            },
        )

    # ------------------------------------------------------------------
    # Direct assignment
    # ------------------------------------------------------------------

    async def assign_direct(
        self, order_id: uuid.UUID, tenant_id: uuid.UUID, actor: AuthenticatedUser
    ) -> AssignmentResult:
        tenant = await self.tenants.get_eligible_tenant(tenant_id)
        order = await self._load_routable_order(order_id)

        order = await self._compare_and_set_route(order, tenant.id)
        losers = await self._resolve_pending_offers(order.id, OfferOutcome.REJECTED)

        self._record(order, "assigned", actor.id, actor.role, f"Assigned to {tenant.business_name}")
        await self._publish_assigned(order, MODE_DIRECT, losers)
        await self.db.flush()

        logger.info("Order %s assigned directly to tenant %s", order.order_number, tenant.id)
        return AssignmentResult(mode=MODE_DIRECT, order=order, losing_tenant_ids=losers)

    # ------------------------------------------------------------------
    # Broadcast and claim
    # ------------------------------------------------------------------

    async def broadcast(
        self, order_id: uuid.UUID, tenant_ids: list[uuid.UUID], actor: AuthenticatedUser
    ) -> BroadcastResult:
        """Open a claim window for a set of approved tenants. The order row is untouched."""
        candidates = list(dict.fromkeys(tenant_ids))
        if not candidates:
            raise ValidationException(
                "Broadcast needs at least one tenant",
                details=[{"field": "tenantIds", "message": "must not be empty"}],
            )
        for candidate in candidates:
            await self.tenants.get_eligible_tenant(candidate)
        order = await self._load_routable_order(order_id)

        # A new broadcast supersedes whatever window was open before
        await self._resolve_pending_offers(order.id, OfferOutcome.EXPIRED)

        broadcast_id = uuid.uuid4()
        expires_at = utcnow() + timedelta(minutes=settings.broadcast_offer_ttl_minutes)
        for candidate in candidates:
            self.db.add(
                OrderOffer(
                    broadcast_id=broadcast_id,
                    order_id=order.id,
                    tenant_id=candidate,
                    outcome=OfferOutcome.PENDING,
                    offered_by=actor.id,
                    expires_at=expires_at,
                )
            )

        self._record(
            order, "broadcast", actor.id, actor.role, f"Offered to {len(candidates)} tenant(s)"
        )
        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_BROADCAST,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "broadcast_id": str(broadcast_id),
                "tenant_ids": [str(t) for t in candidates],
                "expires_at": expires_at.isoformat(),
            },
        )
        await self.db.flush()

        logger.info(
            "Order %s broadcast %s to %d tenant(s)",
            order.order_number,
            broadcast_id,
            len(candidates),
        )
        return BroadcastResult(
            order=order, broadcast_id=broadcast_id, tenant_ids=candidates, expires_at=expires_at
        )

    async def _get_open_offer(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> OrderOffer:
        """The tenant's live offer for the order.

        An offer rejected because someone else won is reported as
        AlreadyRouted; a missing, expired or declined offer means the tenant
        was never (or is no longer) eligible.
        """
        offers = list(
            await self.db.scalars(
                select(OrderOffer)
                .where(OrderOffer.order_id == order_id, OrderOffer.tenant_id == tenant_id)
                .order_by(OrderOffer.created_at.desc())
                .execution_options(populate_existing=True)
            )
        )
        if not offers:
            raise TenantNotEligibleException("This order was not offered to your store")

        latest = offers[0]
        if latest.outcome == OfferOutcome.REJECTED:
            raise AlreadyRoutedException("Order was accepted by another store")
        if latest.outcome != OfferOutcome.PENDING:
            raise TenantNotEligibleException(
                f"Your offer for this order is {latest.outcome.value}"
            )

        live = await self.db.scalar(
            select(OrderOffer.id).where(
                OrderOffer.id == latest.id, OrderOffer.expires_at > func.now()
            )
        )
        if live is None:
            raise TenantNotEligibleException("Your offer for this order has expired")
        return latest

    async def claim(
        self,
        order_id: uuid.UUID,
        tenant_id: uuid.UUID,
        actor: AuthenticatedUser | None = None,
    ) -> AssignmentResult:
        """Accept a broadcast offer. Exactly one concurrent claimant wins."""
        await self.tenants.get_eligible_tenant(tenant_id)
        offer = await self._get_open_offer(order_id, tenant_id)
        order = await self._load_routable_order(order_id)

        order = await self._compare_and_set_route(order, tenant_id)

        await self.db.execute(
            update(OrderOffer)
            .where(OrderOffer.id == offer.id)
            .values(outcome=OfferOutcome.CLAIMED, resolved_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        losers = await self._resolve_pending_offers(
            order.id, OfferOutcome.REJECTED, exclude_tenant_id=tenant_id
        )

        self._record(
            order,
            "claimed",
            actor.id if actor else None,
            actor.role if actor else CallerRole.TENANT,
            "Accepted from broadcast",
        )
        await self._publish_assigned(order, MODE_CLAIM, losers)
        await self.db.flush()

        logger.info("Order %s claimed by tenant %s", order.order_number, tenant_id)
        return AssignmentResult(mode=MODE_CLAIM, order=order, losing_tenant_ids=losers)

    async def decline(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> OrderOffer:
        """Withdraw a tenant from an open broadcast window."""
        offer = await self._get_open_offer(order_id, tenant_id)
        offer.outcome = OfferOutcome.DECLINED
        offer.resolved_at = utcnow()
        await self.db.flush()
        logger.info("Tenant %s declined order %s", tenant_id, order_id)
        return offer

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def expire_stale_offers(self) -> int:
        """Mark pending offers whose window has closed as expired."""
        result = await self.db.execute(
            update(OrderOffer)
            .where(
                OrderOffer.outcome == OfferOutcome.PENDING,
                OrderOffer.expires_at <= func.now(),
            )
            .values(outcome=OfferOutcome.EXPIRED, resolved_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        expired = result.rowcount or 0
        if expired:
            logger.info("Expired %d stale broadcast offer(s)", expired)
        return expired
