"""Tests for the tenant registry service."""

import uuid
from decimal import Decimal

import pytest

from src.exceptions import (
    ConflictException,
    IllegalTransitionException,
    NotFoundException,
    ValidationException,
)
from src.models.enums import OrderStatus, TenantStatus
from src.modules.assignment.service import AssignmentService
from src.modules.events.outbox_service import OutboxService
from src.modules.status.service import StatusStateMachine
from src.modules.tenant.constants import (
    EVENT_TENANT_COMMISSION_RATE_CHANGED,
    EVENT_TENANT_STATUS_CHANGED,
)
from src.modules.tenant.service import TenantService
from tests.factories import admin_user, create_order, create_tenant


def _application(**overrides) -> dict:
    data = {
        "business_name": "Kaveri Crafts",
        "owner_name": "Kaveri Raman",
        "email": "Kaveri@Crafts.test",
        "phone": "9840011111",
        "address": {"city": "Erode", "pincode": "638001"},
    }
    data.update(overrides)
    return data


class TestApply:
    @pytest.mark.asyncio
    async def test_application_starts_pending_with_default_rate(self, db):
        user_id = uuid.uuid4()

        tenant = await TenantService(db).apply(user_id, _application())

        assert tenant.status == TenantStatus.PENDING
        assert tenant.email == "kaveri@crafts.test"
        assert tenant.commission_rate == Decimal("10")
        assert tenant.user_id == user_id
        assert tenant.is_eligible is False

    @pytest.mark.asyncio
    async def test_duplicate_email_is_a_conflict(self, db):
        svc = TenantService(db)
        await svc.apply(None, _application())

        with pytest.raises(ConflictException):
            await svc.apply(None, _application(email="kaveri@crafts.test "))


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_approve_suspend_reactivate(self, db):
        svc = TenantService(db)
        tenant = await svc.apply(None, _application())

        tenant = await svc.change_status(tenant.id, "approve")
        assert tenant.is_eligible

        tenant = await svc.change_status(tenant.id, "suspend")
        assert tenant.status == TenantStatus.SUSPENDED
        assert tenant.is_active is False

        tenant = await svc.change_status(tenant.id, "reactivate")
        assert tenant.is_eligible

    @pytest.mark.asyncio
    async def test_reject_records_reason_and_approve_clears_it(self, db):
        svc = TenantService(db)
        tenant = await svc.apply(None, _application())

        tenant = await svc.change_status(tenant.id, "reject", reason="Missing GST")
        assert tenant.rejection_reason == "Missing GST"

        tenant = await svc.change_status(tenant.id, "approve")
        assert tenant.rejection_reason is None

    @pytest.mark.parametrize(
        ("status", "action"),
        [
            (TenantStatus.PENDING, "suspend"),
            (TenantStatus.PENDING, "reactivate"),
            (TenantStatus.APPROVED, "approve"),
            (TenantStatus.APPROVED, "reject"),
            (TenantStatus.SUSPENDED, "reject"),
            (TenantStatus.REJECTED, "suspend"),
        ],
    )
    @pytest.mark.asyncio
    async def test_illegal_actions(self, db, status, action):
        tenant = await create_tenant(db, status=status)

        with pytest.raises(IllegalTransitionException):
            await TenantService(db).change_status(tenant.id, action)

    @pytest.mark.asyncio
    async def test_status_change_publishes_event(self, db):
        tenant = await create_tenant(db, status=TenantStatus.PENDING)
        actor = uuid.uuid4()

        await TenantService(db).change_status(tenant.id, "approve", actor_id=actor)

        events = await OutboxService(db).get_events_for_aggregate("tenant", tenant.id)
        assert [e.event_type for e in events] == [EVENT_TENANT_STATUS_CHANGED]
        assert events[0].payload["to_status"] == "approved"
        assert events[0].payload["actor_id"] == str(actor)

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, db):
        with pytest.raises(NotFoundException):
            await TenantService(db).change_status(uuid.uuid4(), "approve")


class TestCommissionRate:
    @pytest.mark.asyncio
    async def test_update_publishes_event(self, db):
        tenant = await create_tenant(db)

        updated = await TenantService(db).update_commission_rate(tenant.id, Decimal("12.5"))

        assert updated.commission_rate == Decimal("12.5")
        events = await OutboxService(db).get_events_for_aggregate("tenant", tenant.id)
        assert events[-1].event_type == EVENT_TENANT_COMMISSION_RATE_CHANGED
        assert events[-1].payload["previous_rate"] == "10"

    @pytest.mark.parametrize("rate", ["-0.01", "100.01"])
    @pytest.mark.asyncio
    async def test_out_of_range_rate(self, db, rate):
        tenant = await create_tenant(db)

        with pytest.raises(ValidationException):
            await TenantService(db).update_commission_rate(tenant.id, Decimal(rate))


class TestProfile:
    @pytest.mark.asyncio
    async def test_update_profile_fields(self, db):
        tenant = await create_tenant(db)

        updated = await TenantService(db).update_profile(
            tenant.id, {"business_name": "Kaveri Handlooms", "email": "NEW@Crafts.test"}
        )

        assert updated.business_name == "Kaveri Handlooms"
        assert updated.email == "new@crafts.test"

    @pytest.mark.asyncio
    async def test_email_clash_is_a_conflict(self, db):
        first = await create_tenant(db)
        second = await create_tenant(db)

        with pytest.raises(ConflictException):
            await TenantService(db).update_profile(second.id, {"email": first.email})


class TestListAndStats:
    @pytest.mark.asyncio
    async def test_list_filters_by_status_and_search(self, db):
        await create_tenant(db, business_name="Madurai Mugs")
        await create_tenant(db, business_name="Salem Silks")
        await create_tenant(db, business_name="Madurai Frames", status=TenantStatus.PENDING)
        svc = TenantService(db)

        items, total = await svc.list_tenants(search="madurai")
        assert total == 2

        items, total = await svc.list_tenants(status=TenantStatus.APPROVED, search="Madurai")
        assert total == 1
        assert items[0].business_name == "Madurai Mugs"

    @pytest.mark.asyncio
    async def test_stats_combine_aggregates_and_live_counts(self, db):
        tenant = await create_tenant(db, commission_rate=Decimal("10"))
        delivered = await create_order(db, tenant_id=tenant.id)
        await create_order(db, tenant_id=tenant.id)
        offered = await create_order(db)
        await StatusStateMachine(db).transition(delivered.id, admin_user(), OrderStatus.DELIVERED)
        await AssignmentService(db).broadcast(offered.id, [tenant.id], admin_user())

        stats = await TenantService(db).get_stats(tenant.id)

        assert stats["total_orders"] == 1
        assert stats["total_revenue"] == Decimal("1000.00")
        assert stats["total_commission"] == Decimal("100.00")
        assert stats["net_revenue"] == Decimal("900.00")
        assert stats["assigned_orders"] == 2
        assert stats["open_orders"] == 1
        assert stats["delivered_orders"] == 1
        assert stats["open_offers"] == 1
