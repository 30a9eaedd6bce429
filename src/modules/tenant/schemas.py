"""Pydantic v2 schemas for the tenant registry endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field

from src.models.enums import TenantStatus
from src.schemas.responses import CamelModel, StrictCamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TenantAddress(StrictCamelModel):
    street: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    pincode: str | None = Field(None, pattern=r"^\d{6}$")


class TenantApply(StrictCamelModel):
    business_name: str = Field(..., min_length=2, max_length=200)
    owner_name: str = Field(..., min_length=2, max_length=200)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    phone: str = Field(..., pattern=r"^\+?\d{10,15}$")
    address: TenantAddress = Field(default_factory=TenantAddress)
    gst_number: str | None = Field(None, max_length=20)
    pan_number: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=1000)


class TenantProfileUpdate(StrictCamelModel):
    business_name: str | None = Field(None, min_length=2, max_length=200)
    owner_name: str | None = Field(None, min_length=2, max_length=200)
    email: str | None = Field(None, pattern=EMAIL_PATTERN, max_length=255)
    phone: str | None = Field(None, pattern=r"^\+?\d{10,15}$")
    address: TenantAddress | None = None
    gst_number: str | None = Field(None, max_length=20)
    pan_number: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=1000)


class TenantRejectRequest(StrictCamelModel):
    reason: str | None = Field(None, max_length=1000)


class CommissionRateUpdate(StrictCamelModel):
    commission_rate: Decimal = Field(..., ge=0, le=100, decimal_places=2)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TenantResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    business_name: str
    owner_name: str
    email: str
    phone: str
    address: dict
    gst_number: str | None = None
    pan_number: str | None = None
    description: str | None = None
    status: TenantStatus
    is_active: bool
    rejection_reason: str | None = None
    commission_rate: Decimal
    total_orders: int
    total_revenue: Decimal
    total_commission: Decimal
    created_at: datetime
    updated_at: datetime


class TenantListResponse(CamelModel):
    items: list[TenantResponse]
    total: int
    limit: int
    offset: int


class TenantStatsResponse(CamelModel):
    tenant_id: uuid.UUID
    commission_rate: Decimal
    total_orders: int
    total_revenue: Decimal
    total_commission: Decimal
    net_revenue: Decimal
    assigned_orders: int
    open_orders: int
    delivered_orders: int
    cancelled_orders: int
    open_offers: int
