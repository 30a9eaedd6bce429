"""Tenant registry — applications, approval lifecycle and commission rates."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import (
    ConflictException,
    IllegalTransitionException,
    NotFoundException,
    TenantNotEligibleException,
    ValidationException,
)
from src.models.enums import OfferOutcome, OrderStatus, TenantStatus
from src.models.order import Order
from src.models.order_offer import OrderOffer
from src.models.tenant import Tenant
from src.modules.events.outbox_service import OutboxService
from src.modules.tenant.constants import (
    EVENT_TENANT_COMMISSION_RATE_CHANGED,
    EVENT_TENANT_STATUS_CHANGED,
    TENANT_ACTIONS,
    TENANT_TRANSITIONS,
)

logger = logging.getLogger(__name__)

OPEN_ORDER_STATUSES = (OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.PROCESSING)


class TenantService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_tenant(self, tenant_id: uuid.UUID, refresh: bool = False) -> Tenant:
        """Load a tenant. ``refresh`` picks up aggregates bumped by settlement UPDATEs."""
        statement = select(Tenant).where(Tenant.id == tenant_id)
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        tenant = await self.db.scalar(statement)
        if tenant is None:
            raise NotFoundException(f"Tenant {tenant_id} not found")
        return tenant

    async def get_eligible_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        """Return the tenant if it may receive orders, else raise TenantNotEligible."""
        tenant = await self.get_tenant(tenant_id)
        if not tenant.is_eligible:
            raise TenantNotEligibleException(
                f"Tenant {tenant.business_name} is {tenant.status.value} and cannot take orders"
            )
        return tenant

    async def list_tenants(
        self,
        status: TenantStatus | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Tenant], int]:
        filters = []
        if status is not None:
            filters.append(Tenant.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(
                    Tenant.business_name.ilike(pattern),
                    Tenant.owner_name.ilike(pattern),
                    Tenant.email.ilike(pattern),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(Tenant).where(*filters))
        result = await self.db.execute(
            select(Tenant)
            .where(*filters)
            .order_by(Tenant.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    # ------------------------------------------------------------------
    # Applications and profile
    # ------------------------------------------------------------------

    async def apply(self, user_id: uuid.UUID | None, data: dict) -> Tenant:
        """Register a tenant application in ``pending`` status."""
        email = data["email"].strip().lower()
        existing = await self.db.scalar(select(Tenant.id).where(Tenant.email == email))
        if existing is not None:
            raise ConflictException("A tenant application with this email already exists")

        tenant = Tenant(
            user_id=user_id,
            business_name=data["business_name"],
            owner_name=data["owner_name"],
            email=email,
            phone=data["phone"],
            address=data.get("address") or {},
            gst_number=data.get("gst_number"),
            pan_number=data.get("pan_number"),
            description=data.get("description"),
            status=TenantStatus.PENDING,
            commission_rate=settings.default_commission_rate,
        )
        self.db.add(tenant)
        await self.db.flush()
        logger.info("Tenant application %s received from %s", tenant.id, email)
        return tenant

    async def update_profile(self, tenant_id: uuid.UUID, changes: dict) -> Tenant:
        """Update business profile fields. Status, rate and aggregates are not editable here."""
        tenant = await self.get_tenant(tenant_id)
        if "email" in changes and changes["email"] is not None:
            email = changes["email"].strip().lower()
            clash = await self.db.scalar(
                select(Tenant.id).where(Tenant.email == email, Tenant.id != tenant_id)
            )
            if clash is not None:
                raise ConflictException("Another tenant already uses this email")
            changes["email"] = email

        for field, value in changes.items():
            if value is not None:
                setattr(tenant, field, value)
        await self.db.flush()
        return tenant

    # ------------------------------------------------------------------
    # Status lifecycle
    # ------------------------------------------------------------------

    async def change_status(
        self,
        tenant_id: uuid.UUID,
        action: str,
        actor_id: uuid.UUID | None = None,
        reason: str | None = None,
    ) -> Tenant:
        """Apply a registry action (approve, reject, suspend, reactivate)."""
        sources, target = TENANT_ACTIONS[action]
        tenant = await self.get_tenant(tenant_id)
        current = tenant.status

        if current not in sources or target not in TENANT_TRANSITIONS.get(current, set()):
            raise IllegalTransitionException(
                f"Cannot {action} a tenant in status '{current.value}'"
            )

        tenant.status = target
        tenant.is_active = target == TenantStatus.APPROVED
        if target == TenantStatus.REJECTED:
            tenant.rejection_reason = reason
        elif target == TenantStatus.APPROVED:
            tenant.rejection_reason = None
        await self.db.flush()

        await OutboxService(self.db).publish_event(
            event_type=EVENT_TENANT_STATUS_CHANGED,
            aggregate_type="tenant",
            aggregate_id=tenant.id,
            payload={
                "tenant_id": str(tenant.id),
                "from_status": current.value,
                "to_status": target.value,
                "reason": reason,
                "actor_id": str(actor_id) if actor_id else None,
            },
        )
        logger.info("Tenant %s: %s -> %s", tenant.id, current.value, target.value)
        return tenant

    async def update_commission_rate(
        self,
        tenant_id: uuid.UUID,
        rate: Decimal,
        actor_id: uuid.UUID | None = None,
    ) -> Tenant:
        """Change the live rate. Orders already settled keep their snapshot."""
        rate = Decimal(rate)
        if rate < 0 or rate > 100:
            raise ValidationException(
                "Commission rate must be between 0 and 100",
                details=[{"field": "commissionRate", "message": "must be between 0 and 100"}],
            )
        tenant = await self.get_tenant(tenant_id)
        previous = tenant.commission_rate
        tenant.commission_rate = rate
        await self.db.flush()

        await OutboxService(self.db).publish_event(
            event_type=EVENT_TENANT_COMMISSION_RATE_CHANGED,
            aggregate_type="tenant",
            aggregate_id=tenant.id,
            payload={
                "tenant_id": str(tenant.id),
                "previous_rate": str(previous),
                "new_rate": str(rate),
                "actor_id": str(actor_id) if actor_id else None,
            },
        )
        logger.info("Tenant %s commission rate %s -> %s", tenant.id, previous, rate)
        return tenant

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def get_stats(self, tenant_id: uuid.UUID) -> dict:
        """Settled aggregates plus live order counts for a tenant dashboard."""
        tenant = await self.get_tenant(tenant_id, refresh=True)

        counts = dict(
            (
                await self.db.execute(
                    select(Order.order_status, func.count())
                    .where(Order.tenant_id == tenant_id)
                    .group_by(Order.order_status)
                )
            ).all()
        )
        open_offers = await self.db.scalar(
            select(func.count())
            .select_from(OrderOffer)
            .where(
                OrderOffer.tenant_id == tenant_id,
                OrderOffer.outcome == OfferOutcome.PENDING,
                OrderOffer.expires_at > func.now(),
            )
        )

        return {
            "tenant_id": tenant.id,
            "commission_rate": tenant.commission_rate,
            "total_orders": tenant.total_orders,
            "total_revenue": tenant.total_revenue,
            "total_commission": tenant.total_commission,
            "net_revenue": tenant.total_revenue - tenant.total_commission,
            "assigned_orders": sum(counts.values()),
            "open_orders": sum(counts.get(s, 0) for s in OPEN_ORDER_STATUSES),
            "delivered_orders": counts.get(OrderStatus.DELIVERED, 0),
            "cancelled_orders": counts.get(OrderStatus.CANCELLED, 0),
            "open_offers": open_offers or 0,
        }
