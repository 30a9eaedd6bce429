"""NotificationRecord model — one row per notification attempt."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, UUIDPrimaryKeyMixin, utcnow
from src.models.enums import NotificationChannel, NotificationOutcome


class NotificationRecord(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "notification_records"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    channel: Mapped[NotificationChannel] = mapped_column(
        SQLAlchemyEnum(NotificationChannel, name="notificationchannel"), nullable=False
    )
    order_status: Mapped[str] = mapped_column(String(30), nullable=False)
    tracking_number: Mapped[str | None] = mapped_column(String(100))
    # Not unique: deliberate resends are recorded as further attempts
    dedup_key: Mapped[str] = mapped_column(String(120), nullable=False)
    attempt: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    outcome: Mapped[NotificationOutcome] = mapped_column(
        SQLAlchemyEnum(NotificationOutcome, name="notificationoutcome"), nullable=False
    )
    recipient: Mapped[str | None] = mapped_column(String(255))
    provider_message_id: Mapped[str | None] = mapped_column(String(255))
    link: Mapped[str | None] = mapped_column(Text)
    error: Mapped[str | None] = mapped_column(Text)
    requested_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_notification_records_order_id", "order_id"),
        Index("ix_notification_records_dedup_key", "dedup_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<NotificationRecord key={self.dedup_key} attempt={self.attempt} "
            f"outcome={self.outcome}>"
        )
