"""Pydantic v2 schemas for notification endpoints."""

from __future__ import annotations

import uuid

from src.models.enums import NotificationChannel, NotificationOutcome, OrderStatus
from src.schemas.responses import CamelModel


class ChannelResultResponse(CamelModel):
    channel: NotificationChannel
    outcome: NotificationOutcome
    attempt: int
    dedup_key: str
    recipient: str | None = None
    provider_message_id: str | None = None
    link: str | None = None
    error: str | None = None
    success: bool


class NotificationResultResponse(CamelModel):
    order_id: uuid.UUID
    order_status: OrderStatus
    all_succeeded: bool
    channels: list[ChannelResultResponse]


class TemplateResponse(CamelModel):
    status: str
    subject: str
    emoji: str
    title: str
    message: str
    whatsapp: str
