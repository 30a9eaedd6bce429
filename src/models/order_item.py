"""OrderItem model — immutable product snapshot taken at checkout."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.order import Order


class OrderItem(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[str | None] = mapped_column(String(50))
    gift_wrap: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    custom_photo_url: Mapped[str | None] = mapped_column(String(1000))
    custom_photo_public_id: Mapped[str | None] = mapped_column(String(300))
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="SET NULL")
    )

    order: Mapped[Order] = relationship("Order", back_populates="items", lazy="raise")

    __table_args__ = (Index("ix_order_items_order_id", "order_id"),)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem id={self.id} product={self.product_id} qty={self.quantity}>"
