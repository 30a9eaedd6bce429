"""Tenant registry status rules and event types."""

from src.models.enums import TenantStatus

TENANT_TRANSITIONS: dict[TenantStatus, set[TenantStatus]] = {
    TenantStatus.PENDING: {TenantStatus.APPROVED, TenantStatus.REJECTED},
    TenantStatus.REJECTED: {TenantStatus.APPROVED},
    TenantStatus.APPROVED: {TenantStatus.SUSPENDED},
    TenantStatus.SUSPENDED: {TenantStatus.APPROVED},
}

# Registry action -> (statuses it may start from, resulting status)
TENANT_ACTIONS: dict[str, tuple[set[TenantStatus], TenantStatus]] = {
    "approve": ({TenantStatus.PENDING, TenantStatus.REJECTED}, TenantStatus.APPROVED),
    "reject": ({TenantStatus.PENDING}, TenantStatus.REJECTED),
    "suspend": ({TenantStatus.APPROVED}, TenantStatus.SUSPENDED),
    "reactivate": ({TenantStatus.SUSPENDED}, TenantStatus.APPROVED),
}

EVENT_TENANT_STATUS_CHANGED = "tenant.status_changed"
EVENT_TENANT_COMMISSION_RATE_CHANGED = "tenant.commission_rate_changed"
