"""Order model — a customer order and its routing/commission state."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from src.models.enums import OrderStatus, PaymentMethod, PaymentStatus

if TYPE_CHECKING:
    from src.models.order_item import OrderItem

ZERO = Decimal("0.00")


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    # Customer snapshot
    customer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(255))
    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLAlchemyEnum(PaymentMethod, name="paymentmethod"), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLAlchemyEnum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    # Pricing
    items_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    packing_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    gift_wrap_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    shipping_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    tax_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    discount_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    combo_discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    coupon_code: Mapped[str | None] = mapped_column(String(50))
    coupon_discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=ZERO)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Routing
    order_status: Mapped[OrderStatus] = mapped_column(
        SQLAlchemyEnum(OrderStatus, name="orderstatus"),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="RESTRICT")
    )
    is_multi_tenant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    routed_to_tenant: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tracking_number: Mapped[str | None] = mapped_column(String(100))

    # Commission snapshot, written once at settlement
    commission_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    commission_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    net_to_tenant: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    commission_base: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    status_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relationships
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    __table_args__ = (
        CheckConstraint(
            "routed_to_tenant = (tenant_id IS NOT NULL)", name="ck_orders_routed_has_tenant"
        ),
        Index("ix_orders_tenant_id", "tenant_id"),
        Index("ix_orders_order_status", "order_status"),
        Index("ix_orders_customer_id", "customer_id"),
        Index("ix_orders_created_at", "created_at"),
    )

    @property
    def customer_phone(self) -> str | None:
        return (self.shipping_address or {}).get("phone")

    @property
    def is_settled(self) -> bool:
        return self.commission_amount is not None

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} number={self.order_number} "
            f"status={self.order_status} tenant={self.tenant_id}>"
        )
