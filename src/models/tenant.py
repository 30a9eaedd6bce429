"""Tenant model — a seller that fulfils routed orders."""

import uuid
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import TenantStatus


class Tenant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "tenants"

    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    gst_number: Mapped[str | None] = mapped_column(String(20))
    pan_number: Mapped[str | None] = mapped_column(String(20))
    description: Mapped[str | None] = mapped_column(String(1000))

    status: Mapped[TenantStatus] = mapped_column(
        SQLAlchemyEnum(TenantStatus, name="tenantstatus"),
        nullable=False,
        default=TenantStatus.PENDING,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(1000))
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("10")
    )

    # Running aggregates, only ever incremented at settlement
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )
    total_commission: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )

    __table_args__ = (
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_tenants_commission_rate_range",
        ),
        Index("ix_tenants_status", "status"),
        Index("ix_tenants_user_id", "user_id"),
    )

    @property
    def is_eligible(self) -> bool:
        return self.status == TenantStatus.APPROVED and self.is_active

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.business_name} status={self.status}>"
