"""OrderOffer model — one candidate tenant in a broadcast claim window."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OfferOutcome


class OrderOffer(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_offers"

    broadcast_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    outcome: Mapped[OfferOutcome] = mapped_column(
        SQLAlchemyEnum(OfferOutcome, name="offeroutcome"),
        nullable=False,
        default=OfferOutcome.PENDING,
    )
    offered_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_order_offers_order_id", "order_id"),
        Index("ix_order_offers_tenant_outcome", "tenant_id", "outcome"),
        Index("ix_order_offers_broadcast_id", "broadcast_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrderOffer id={self.id} order={self.order_id} "
            f"tenant={self.tenant_id} outcome={self.outcome}>"
        )
