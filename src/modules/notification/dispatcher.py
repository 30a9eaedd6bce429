"""Notification dispatcher — customer status messages over email and WhatsApp.

Every call sends again; there is no dedup cache. Each attempt is recorded
under the key ``{order_id}:{status}:{channel}`` with a running attempt
number, so deliberate resends stay visible. Provider failures are captured
per channel and returned to the caller; they never abort the request.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.exceptions import NotificationFailureException
from src.models.enums import NotificationChannel, NotificationOutcome, OrderStatus
from src.models.notification_record import NotificationRecord
from src.models.order import Order
from src.modules.notification import templates
from src.modules.notification.providers.base import EmailMessage, EmailProviderBase
from src.modules.notification.providers.factory import get_email_provider
from src.modules.notification.providers.whatsapp import build_link
from src.modules.order.service import OrderService

logger = logging.getLogger(__name__)

CHANNELS_BY_TYPE: dict[str, tuple[NotificationChannel, ...]] = {
    "email": (NotificationChannel.EMAIL,),
    "whatsapp": (NotificationChannel.WHATSAPP,),
    "both": (NotificationChannel.EMAIL, NotificationChannel.WHATSAPP),
}


def dedup_key(order_id: uuid.UUID, status: OrderStatus, channel: NotificationChannel) -> str:
    return f"{order_id}:{status.value}:{channel.value}"


@dataclass
class ChannelResult:
    channel: NotificationChannel
    outcome: NotificationOutcome
    attempt: int
    dedup_key: str
    recipient: str | None = None
    provider_message_id: str | None = None
    link: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome != NotificationOutcome.FAILED


@dataclass
class NotificationResult:
    order_id: uuid.UUID
    order_status: OrderStatus
    channels: list[ChannelResult] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(result.success for result in self.channels)


class NotificationDispatcher:
    def __init__(self, db: AsyncSession, email_provider: EmailProviderBase | None = None):
        self.db = db
        self.email_provider = email_provider or get_email_provider()

    async def notify(
        self,
        order_id: uuid.UUID,
        channel: str,
        status: OrderStatus | None = None,
        tracking_number: str | None = None,
        requested_by: uuid.UUID | None = None,
    ) -> NotificationResult:
        """Notify the customer about ``status`` (default: the order's current status)."""
        if channel not in CHANNELS_BY_TYPE:
            raise ValueError(f"Unknown notification channel: {channel}")
        order = await OrderService(self.db).get_order(order_id)
        status = status or order.order_status
        tracking_number = tracking_number or order.tracking_number

        result = NotificationResult(order_id=order.id, order_status=status)
        for target in CHANNELS_BY_TYPE[channel]:
            if target == NotificationChannel.EMAIL:
                outcome = await self._send_email(order, status, tracking_number)
            else:
                outcome = self._build_whatsapp(order, status, tracking_number)
            result.channels.append(
                await self._record(order, status, tracking_number, requested_by, outcome)
            )

        logger.info(
            "Notified order %s (%s) via %s: %s",
            order.order_number,
            status.value,
            channel,
            ", ".join(f"{r.channel.value}={r.outcome.value}" for r in result.channels),
        )
        return result

    async def _send_email(
        self, order: Order, status: OrderStatus, tracking_number: str | None
    ) -> ChannelResult:
        partial = ChannelResult(
            channel=NotificationChannel.EMAIL,
            outcome=NotificationOutcome.FAILED,
            attempt=0,
            dedup_key=dedup_key(order.id, status, NotificationChannel.EMAIL),
            recipient=order.customer_email,
        )
        if not order.customer_email:
            partial.error = "No customer email on file"
            return partial

        rendered = templates.render_email(
            order,
            status,
            store_name=settings.store_name,
            order_url=f"{settings.storefront_url}/orders/{order.id}",
            support_email=settings.support_email,
            tracking_number=tracking_number,
        )
        try:
            partial.provider_message_id = await self.email_provider.send(
                EmailMessage(
                    to=order.customer_email,
                    subject=rendered.subject,
                    text=rendered.text,
                    html=rendered.html,
                )
            )
        except NotificationFailureException as exc:
            partial.error = exc.message
            return partial
        partial.outcome = NotificationOutcome.SENT
        return partial

    def _build_whatsapp(
        self, order: Order, status: OrderStatus, tracking_number: str | None
    ) -> ChannelResult:
        partial = ChannelResult(
            channel=NotificationChannel.WHATSAPP,
            outcome=NotificationOutcome.FAILED,
            attempt=0,
            dedup_key=dedup_key(order.id, status, NotificationChannel.WHATSAPP),
            recipient=order.customer_phone,
        )
        text = templates.render_whatsapp(order, status, settings.store_name, tracking_number)
        try:
            partial.link = build_link(order.customer_phone, text)
        except NotificationFailureException as exc:
            partial.error = exc.message
            return partial
        partial.outcome = NotificationOutcome.LINK_GENERATED
        return partial

    async def _record(
        self,
        order: Order,
        status: OrderStatus,
        tracking_number: str | None,
        requested_by: uuid.UUID | None,
        result: ChannelResult,
    ) -> ChannelResult:
        previous = await self.db.scalar(
            select(func.count())
            .select_from(NotificationRecord)
            .where(NotificationRecord.dedup_key == result.dedup_key)
        )
        result.attempt = (previous or 0) + 1
        self.db.add(
            NotificationRecord(
                order_id=order.id,
                channel=result.channel,
                order_status=status.value,
                tracking_number=tracking_number,
                dedup_key=result.dedup_key,
                attempt=result.attempt,
                outcome=result.outcome,
                recipient=result.recipient,
                provider_message_id=result.provider_message_id,
                link=result.link,
                error=result.error,
                requested_by=requested_by,
            )
        )
        await self.db.flush()
        return result

    async def send_tenant_notice(self, to: str, subject: str, text: str) -> str:
        """Plain email to a tenant. Raises NotificationFailureException on failure."""
        return await self.email_provider.send(EmailMessage(to=to, subject=subject, text=text))
