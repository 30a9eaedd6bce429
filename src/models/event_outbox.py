"""EventOutbox model — domain events written in the same transaction as the change."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import EventStatus


class EventOutbox(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "event_outbox"

    event_type: Mapped[str] = mapped_column(String(255), nullable=False)
    aggregate_type: Mapped[str] = mapped_column(String(100), nullable=False)
    aggregate_id: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[EventStatus] = mapped_column(
        SQLAlchemyEnum(EventStatus, name="eventstatus"),
        nullable=False,
        default=EventStatus.PENDING,
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    last_error: Mapped[str | None] = mapped_column(Text)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_event_outbox_status_created", "status", "created_at"),
        Index("ix_event_outbox_aggregate", "aggregate_type", "aggregate_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventOutbox id={self.id} type={self.event_type} "
            f"aggregate={self.aggregate_type}/{self.aggregate_id} status={self.status}>"
        )
