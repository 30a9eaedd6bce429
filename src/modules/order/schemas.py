"""Pydantic v2 schemas for the order endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field, field_validator, model_validator

from src.models.enums import OfferOutcome, OrderStatus, PaymentMethod, PaymentStatus
from src.schemas.responses import CamelModel, StrictCamelModel

Money = Decimal

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ShippingAddress(StrictCamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., pattern=r"^\+?[\d\s-]{10,20}$")
    address_line1: str = Field(..., min_length=1, max_length=300)
    address_line2: str | None = Field(None, max_length=300)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^\d{6}$")


class CustomPhoto(StrictCamelModel):
    url: str = Field(..., max_length=1000)
    public_id: str | None = Field(None, max_length=300)


class OrderItemCreate(StrictCamelModel):
    product_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=300)
    price: Money = Field(..., ge=0, decimal_places=2)
    quantity: int = Field(..., gt=0)
    size: str | None = Field(None, max_length=50)
    gift_wrap: bool = False
    custom_photo: CustomPhoto | None = None
    tenant_id: uuid.UUID | None = None


class OrderCreate(StrictCamelModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: str | None = Field(None, max_length=255)
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items: list[OrderItemCreate] = Field(..., min_length=1)
    items_price: Money = Field(..., ge=0, decimal_places=2)
    packing_price: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    gift_wrap_price: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    shipping_price: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    tax_price: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    discount_price: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    combo_discount: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    coupon_code: str | None = Field(None, max_length=50)
    coupon_discount: Money = Field(Decimal("0"), ge=0, decimal_places=2)
    tenant_id: uuid.UUID | None = None


class AssignTenantRequest(StrictCamelModel):
    """Direct assignment (``tenantId``) or broadcast (``notifyOnly`` with candidates)."""

    tenant_id: uuid.UUID | None = None
    tenant_ids: list[uuid.UUID] | None = None
    notify_only: bool = False

    @model_validator(mode="after")
    def _check_shape(self) -> AssignTenantRequest:
        if self.notify_only:
            if not self.tenant_ids and self.tenant_id is None:
                raise ValueError("Broadcast requires tenantIds or tenantId")
        else:
            if self.tenant_id is None:
                raise ValueError("tenantId is required unless notifyOnly is set")
            if self.tenant_ids:
                raise ValueError("tenantIds is only valid with notifyOnly")
        return self

    def candidate_ids(self) -> list[uuid.UUID]:
        candidates = list(self.tenant_ids or [])
        if self.tenant_id is not None:
            candidates.append(self.tenant_id)
        return candidates


class _TrackingMixin(StrictCamelModel):
    tracking_number: str | None = Field(None, max_length=100)

    @field_validator("tracking_number")
    @classmethod
    def _non_empty_tracking(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("trackingNumber must not be empty when provided")
        return value


class AdminStatusUpdate(_TrackingMixin):
    status: OrderStatus
    message: str | None = Field(None, max_length=1000)
    expected_status: OrderStatus | None = None


class TenantStatusUpdate(_TrackingMixin):
    order_status: OrderStatus
    message: str | None = Field(None, max_length=1000)
    expected_status: OrderStatus | None = None


class CancelOrderRequest(StrictCamelModel):
    reason: str | None = Field(None, max_length=1000)


class NotifyRequest(_TrackingMixin):
    type: Literal["email", "whatsapp", "both"]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OrderItemResponse(CamelModel):
    id: uuid.UUID
    product_id: str
    name: str
    price: Money
    quantity: int
    size: str | None = None
    gift_wrap: bool
    custom_photo_url: str | None = None
    custom_photo_public_id: str | None = None
    tenant_id: uuid.UUID | None = None


class OrderResponse(CamelModel):
    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID | None = None
    customer_name: str
    customer_email: str | None = None
    shipping_address: dict
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    items: list[OrderItemResponse] = []
    items_price: Money
    packing_price: Money
    gift_wrap_price: Money
    shipping_price: Money
    tax_price: Money
    discount_price: Money
    combo_discount: Money
    coupon_code: str | None = None
    coupon_discount: Money
    total_price: Money
    order_status: OrderStatus
    tenant_id: uuid.UUID | None = None
    is_multi_tenant: bool
    routed_to_tenant: bool
    tracking_number: str | None = None
    commission_rate: Money | None = None
    commission_amount: Money | None = None
    net_to_tenant: Money | None = None
    commission_base: Money | None = None
    status_changed_at: datetime
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class StatusHistoryResponse(CamelModel):
    id: uuid.UUID
    action: str
    from_status: str | None = None
    to_status: str
    actor_role: str
    tenant_id: uuid.UUID | None = None
    message: str | None = None
    created_at: datetime


class OrderListResponse(CamelModel):
    items: list[OrderResponse]
    total: int
    limit: int
    offset: int


class OfferResponse(CamelModel):
    offer_id: uuid.UUID
    broadcast_id: uuid.UUID
    outcome: OfferOutcome
    expires_at: datetime
    order: OrderResponse


class AssignmentResponse(CamelModel):
    mode: Literal["direct", "broadcast", "claim"]
    order: OrderResponse
    broadcast_id: uuid.UUID | None = None
    tenant_ids: list[uuid.UUID] = []
    expires_at: datetime | None = None


class DeclineResponse(CamelModel):
    order_id: uuid.UUID
    offer_id: uuid.UUID
    outcome: OfferOutcome


class CommissionResponse(CamelModel):
    base: Money
    rate: Money
    commission_amount: Money
    net_to_tenant: Money


class TransitionResponse(CamelModel):
    order: OrderResponse
    previous_status: OrderStatus
    changed: bool
    commission: CommissionResponse | None = None


class DashboardStatsResponse(CamelModel):
    total_orders: int
    by_status: dict[str, int]
    unrouted_orders: int
    total_revenue: Money
    total_commission: Money
