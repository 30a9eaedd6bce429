"""Commission settlement — snapshot on the order, aggregates on the tenant."""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import SettlementFailureException
from src.models.enums import CommissionBase
from src.models.order import Order
from src.models.tenant import Tenant
from src.modules.commission.calculator import CommissionBreakdown, calculate_commission

logger = logging.getLogger(__name__)

PLATFORM_RATE = Decimal("0")


def commissionable_base(order: Order) -> Decimal:
    if CommissionBase(settings.commission_base) == CommissionBase.ITEMS_PRICE:
        return order.items_price
    return order.total_price


class CommissionService:
    """Settles commission for a delivered order.

    Must run inside the transaction that moves the order to Delivered; any
    error raised here aborts that transition.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def settle(self, order: Order) -> CommissionBreakdown:
        base = commissionable_base(order)

        if order.tenant_id is None:
            # Platform-fulfilled: nothing is owed to anyone
            breakdown = calculate_commission(base, PLATFORM_RATE)
        else:
            rate = await self.db.scalar(
                select(Tenant.commission_rate).where(Tenant.id == order.tenant_id)
            )
            if rate is None:
                raise SettlementFailureException(
                    f"Tenant {order.tenant_id} for order {order.order_number} no longer exists"
                )
            try:
                breakdown = calculate_commission(base, rate)
            except ValueError as exc:
                raise SettlementFailureException(str(exc)) from exc

        snapshot = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.commission_amount.is_(None))
            .values(
                commission_rate=breakdown.rate,
                commission_amount=breakdown.commission_amount,
                net_to_tenant=breakdown.net_to_tenant,
                commission_base=breakdown.base,
            )
            .execution_options(synchronize_session=False)
        )
        if snapshot.rowcount != 1:
            raise SettlementFailureException(f"Order {order.order_number} is already settled")

        if order.tenant_id is not None:
            aggregates = await self.db.execute(
                update(Tenant)
                .where(Tenant.id == order.tenant_id)
                .values(
                    total_orders=Tenant.total_orders + 1,
                    total_revenue=Tenant.total_revenue + breakdown.base,
                    total_commission=Tenant.total_commission + breakdown.commission_amount,
                )
                .execution_options(synchronize_session=False)
            )
            if aggregates.rowcount != 1:
                raise SettlementFailureException(
                    f"Could not update aggregates for tenant {order.tenant_id}"
                )

        logger.info(
            "Settled order %s: base=%s rate=%s commission=%s net=%s",
            order.order_number,
            breakdown.base,
            breakdown.rate,
            breakdown.commission_amount,
            breakdown.net_to_tenant,
        )
        return breakdown
