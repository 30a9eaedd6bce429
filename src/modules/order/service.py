"""Order store — creation from checkout, scoped reads and dashboard stats."""

from __future__ import annotations

import logging
import secrets
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import utcnow
from src.exceptions import (
    AppException,
    ForbiddenException,
    NotFoundException,
    NotOwnerException,
)
from src.models.enums import CallerRole, OfferOutcome, OrderStatus, PaymentMethod
from src.models.order import Order
from src.models.order_item import OrderItem
from src.models.order_offer import OrderOffer
from src.models.order_status_history import OrderStatusHistory
from src.modules.events.outbox_service import OutboxService
from src.modules.order.constants import (
    EVENT_ORDER_CREATED,
    ORDER_NUMBER_ATTEMPTS,
    ORDER_NUMBER_PREFIX,
)
from src.modules.order.pricing import (
    ZERO,
    PriceBreakdown,
    assert_order_consistent,
    to_money,
    validate_breakdown,
)
from src.modules.tenancy.auth import AuthenticatedUser
from src.modules.tenant.service import TenantService

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Reference number generation
    # ------------------------------------------------------------------

    async def _generate_order_number(self) -> str:
        """PKyyMMdd followed by four random digits, unique across orders."""
        prefix = ORDER_NUMBER_PREFIX + utcnow().strftime("%y%m%d")
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            candidate = f"{prefix}{secrets.randbelow(10000):04d}"
            taken = await self.db.scalar(
                select(Order.id).where(Order.order_number == candidate)
            )
            if taken is None:
                return candidate
        raise AppException(f"Could not allocate an order number for {prefix}")

    # ------------------------------------------------------------------
    # Creation (called by checkout integrations and the seeder)
    # ------------------------------------------------------------------

    async def create_order(self, data: dict, customer_id: uuid.UUID | None = None) -> Order:
        """Persist a checked-out order in Pending.

        ``data`` is the snake_case dump of an ``OrderCreate`` payload. When
        checkout already resolved single-tenant ownership, ``tenant_id`` is
        set and the order is born routed.
        """
        item_rows = data["items"]
        breakdown = PriceBreakdown(
            items_price=to_money(data["items_price"]),
            packing_price=to_money(data.get("packing_price") or ZERO),
            gift_wrap_price=to_money(data.get("gift_wrap_price") or ZERO),
            shipping_price=to_money(data.get("shipping_price") or ZERO),
            tax_price=to_money(data.get("tax_price") or ZERO),
            discount_price=to_money(data.get("discount_price") or ZERO),
            combo_discount=to_money(data.get("combo_discount") or ZERO),
            coupon_discount=to_money(data.get("coupon_discount") or ZERO),
        )
        validate_breakdown(
            breakdown, [(to_money(row["price"]), row["quantity"]) for row in item_rows]
        )

        tenant_id = data.get("tenant_id")
        if tenant_id is not None:
            await TenantService(self.db).get_eligible_tenant(tenant_id)
        item_tenants = {row.get("tenant_id") for row in item_rows if row.get("tenant_id")}

        order = Order(
            order_number=await self._generate_order_number(),
            customer_id=customer_id,
            customer_name=data["customer_name"],
            customer_email=data.get("customer_email"),
            shipping_address=data["shipping_address"],
            payment_method=PaymentMethod(data["payment_method"]),
            items_price=breakdown.items_price,
            packing_price=breakdown.packing_price,
            gift_wrap_price=breakdown.gift_wrap_price,
            shipping_price=breakdown.shipping_price,
            tax_price=breakdown.tax_price,
            discount_price=breakdown.discount_price,
            combo_discount=breakdown.combo_discount,
            coupon_code=data.get("coupon_code"),
            coupon_discount=breakdown.coupon_discount,
            total_price=breakdown.total_price,
            order_status=OrderStatus.PENDING,
            tenant_id=tenant_id,
            routed_to_tenant=tenant_id is not None,
            is_multi_tenant=len(item_tenants) > 1,
            items=[
                OrderItem(
                    position=position,
                    product_id=row["product_id"],
                    name=row["name"],
                    price=to_money(row["price"]),
                    quantity=row["quantity"],
                    size=row.get("size"),
                    gift_wrap=bool(row.get("gift_wrap")),
                    custom_photo_url=(row.get("custom_photo") or {}).get("url"),
                    custom_photo_public_id=(row.get("custom_photo") or {}).get("public_id"),
                    tenant_id=row.get("tenant_id"),
                )
                for position, row in enumerate(item_rows)
            ],
        )
        self.db.add(order)
        await self.db.flush()
        assert_order_consistent(order)

        await OutboxService(self.db).publish_event(
            event_type=EVENT_ORDER_CREATED,
            aggregate_type="order",
            aggregate_id=order.id,
            payload={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "tenant_id": str(tenant_id) if tenant_id else None,
                "total_price": str(order.total_price),
            },
        )
        logger.info("Created order %s (%s)", order.order_number, order.id)
        return order

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_order(self, order_id: uuid.UUID, refresh: bool = False) -> Order:
        """Load an order with its items. ``refresh`` overwrites any stale identity-map copy."""
        statement = select(Order).where(Order.id == order_id)
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        order = await self.db.scalar(statement)
        if order is None:
            raise NotFoundException(f"Order {order_id} not found")
        return order

    async def has_open_offer(self, order_id: uuid.UUID, tenant_id: uuid.UUID) -> bool:
        offer_id = await self.db.scalar(
            select(OrderOffer.id).where(
                OrderOffer.order_id == order_id,
                OrderOffer.tenant_id == tenant_id,
                OrderOffer.outcome == OfferOutcome.PENDING,
                OrderOffer.expires_at > func.now(),
            )
        )
        return offer_id is not None

    async def get_order_for_caller(self, order_id: uuid.UUID, caller: AuthenticatedUser) -> Order:
        """Load an order the caller is allowed to see.

        Admins see everything; tenants see orders they own or hold an open
        offer for; customers see their own orders.
        """
        order = await self.get_order(order_id)
        if caller.is_platform_admin:
            return order
        if caller.role == CallerRole.TENANT:
            if order.tenant_id == caller.tenant_id:
                return order
            if order.tenant_id is None and await self.has_open_offer(order_id, caller.tenant_id):
                return order
        elif order.customer_id is not None and order.customer_id == caller.id:
            return order
        raise ForbiddenException("Not authorized to view this order")

    async def get_history(
        self, order_id: uuid.UUID, caller: AuthenticatedUser
    ) -> list[OrderStatusHistory]:
        """Routing and status timeline of an order the caller may view, oldest first."""
        order = await self.get_order_for_caller(order_id, caller)
        result = await self.db.scalars(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order.id)
            .order_by(OrderStatusHistory.created_at.asc())
        )
        return list(result.all())

    def assert_can_manage(self, order: Order, caller: AuthenticatedUser) -> None:
        """Customer communication and invoices are sent by an admin or the owning tenant."""
        if caller.is_platform_admin:
            return
        if caller.role != CallerRole.TENANT:
            raise ForbiddenException("Only staff can act on customer communication")
        if order.tenant_id is None or order.tenant_id != caller.tenant_id:
            raise NotOwnerException("This order is not assigned to your store")

    async def list_orders(
        self,
        caller: AuthenticatedUser,
        status: OrderStatus | None = None,
        tenant_id: uuid.UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Order], int]:
        """List orders in the caller's scope, newest first.

        The ``tenant_id`` filter is honoured for admins only; a tenant is
        always pinned to its own orders and a customer to their own.
        """
        filters = []
        if caller.is_platform_admin:
            if tenant_id is not None:
                filters.append(Order.tenant_id == tenant_id)
        elif caller.role == CallerRole.TENANT:
            filters.append(Order.tenant_id == caller.tenant_id)
        else:
            filters.append(Order.customer_id == caller.id)
        if status is not None:
            filters.append(Order.order_status == status)

        total = await self.db.scalar(select(func.count()).select_from(Order).where(*filters))
        result = await self.db.execute(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_open_offers(self, tenant_id: uuid.UUID) -> list[tuple[OrderOffer, Order]]:
        """Pending, unexpired broadcast offers for a tenant on still-unrouted orders."""
        result = await self.db.execute(
            select(OrderOffer, Order)
            .join(Order, Order.id == OrderOffer.order_id)
            .where(
                OrderOffer.tenant_id == tenant_id,
                OrderOffer.outcome == OfferOutcome.PENDING,
                OrderOffer.expires_at > func.now(),
                Order.routed_to_tenant.is_(False),
            )
            .order_by(OrderOffer.expires_at.asc())
        )
        return [(offer, order) for offer, order in result.all()]

    async def get_dashboard_stats(self) -> dict:
        """Platform-wide counts and money totals for the admin dashboard."""
        by_status = dict(
            (
                await self.db.execute(
                    select(Order.order_status, func.count()).group_by(Order.order_status)
                )
            ).all()
        )
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Order.total_price), 0)).where(
                Order.order_status != OrderStatus.CANCELLED
            )
        )
        commission = await self.db.scalar(
            select(func.coalesce(func.sum(Order.commission_amount), 0)).where(
                Order.order_status == OrderStatus.DELIVERED
            )
        )
        unrouted = await self.db.scalar(
            select(func.count())
            .select_from(Order)
            .where(
                Order.routed_to_tenant.is_(False),
                Order.order_status.not_in([OrderStatus.DELIVERED, OrderStatus.CANCELLED]),
            )
        )
        return {
            "total_orders": sum(by_status.values()),
            "by_status": {status.value: count for status, count in by_status.items()},
            "unrouted_orders": unrouted or 0,
            "total_revenue": to_money(revenue or 0),
            "total_commission": to_money(commission or 0),
        }
