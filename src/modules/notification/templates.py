"""Customer and tenant message templates.

Placeholders use ``str.format`` names: ``customer_name``, ``order_number``,
``total_price`` (rounded to whole rupees), ``tracking_info``, ``store_name``
and, for tenant notices, ``business_name`` and ``expires_at``.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from decimal import ROUND_HALF_UP, Decimal

from src.models.enums import OrderStatus


@dataclass(frozen=True)
class StatusTemplate:
    status: str
    subject: str
    emoji: str
    title: str
    message: str
    whatsapp: str


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    text: str
    html: str


_SIGN_OFF = "\n\nThank you for shopping with {store_name}! 🛍️"

STATUS_TEMPLATES: dict[OrderStatus, StatusTemplate] = {
    OrderStatus.PENDING: StatusTemplate(
        status=OrderStatus.PENDING.value,
        subject="We Received Your Order - {order_number}",
        emoji="🧾",
        title="Order Received",
        message="Thank you for your order! We have received it and will confirm it shortly.",
        whatsapp=(
            "🧾 *Order Received*\n\nHi {customer_name},\n\nWe have received your order "
            "*{order_number}*.\n\nTotal: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.ACCEPTED: StatusTemplate(
        status=OrderStatus.ACCEPTED.value,
        subject="Your Order Has Been Accepted - {order_number}",
        emoji="👍",
        title="Order Accepted",
        message="Good news! A seller has accepted your order and will start preparing it soon.",
        whatsapp=(
            "👍 *Order Update - Accepted*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* has been accepted!\n\nTotal: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.PROCESSING: StatusTemplate(
        status=OrderStatus.PROCESSING.value,
        subject="Your Order is Being Processed - {order_number}",
        emoji="⚙️",
        title="Order Processing",
        message=(
            "Great news! We have started processing your order. Our team is carefully "
            "preparing your items."
        ),
        whatsapp=(
            "⚙️ *Order Update - Processing*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* is now being processed!\n\nWe're carefully preparing your items "
            "with love. You'll receive another update once it's shipped.\n\n"
            "Total: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.PACKED: StatusTemplate(
        status=OrderStatus.PACKED.value,
        subject="Your Order is Packed - {order_number}",
        emoji="📦",
        title="Order Packed",
        message="Your order is packed and waiting for the courier.",
        whatsapp=(
            "📦 *Order Update - Packed*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* is packed and ready to ship.\n\nTotal: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.SHIPPED: StatusTemplate(
        status=OrderStatus.SHIPPED.value,
        subject="Your Order Has Been Shipped - {order_number}",
        emoji="🚚",
        title="Order Shipped!",
        message=(
            "Exciting news! Your order has been shipped and is on its way to you. You can "
            "track your package using the tracking details below."
        ),
        whatsapp=(
            "🚚 *Order Update - Shipped*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* has been shipped!\n\n📦 Your package is on the way!\n"
            "{tracking_info}\n\nTotal: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.OUT_FOR_DELIVERY: StatusTemplate(
        status=OrderStatus.OUT_FOR_DELIVERY.value,
        subject="Your Order is Out for Delivery - {order_number}",
        emoji="🛵",
        title="Out for Delivery",
        message="Your order is out for delivery and will reach you today.",
        whatsapp=(
            "🛵 *Order Update - Out for Delivery*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* is out for delivery!\n{tracking_info}\n\n"
            "Total: ₹{total_price}" + _SIGN_OFF
        ),
    ),
    OrderStatus.DELIVERED: StatusTemplate(
        status=OrderStatus.DELIVERED.value,
        subject="Your Order Has Been Delivered - {order_number}",
        emoji="✅",
        title="Order Delivered!",
        message=(
            "Your order has been successfully delivered! We hope you love your purchase. "
            "Please share your feedback with us."
        ),
        whatsapp=(
            "✅ *Order Update - Delivered*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* has been delivered!\n\n🎉 We hope you love your purchase!\n\n"
            "If you have any questions or feedback, please let us know." + _SIGN_OFF
        ),
    ),
    OrderStatus.CANCELLED: StatusTemplate(
        status=OrderStatus.CANCELLED.value,
        subject="Your Order Has Been Cancelled - {order_number}",
        emoji="❌",
        title="Order Cancelled",
        message=(
            "Your order has been cancelled. If you did not request this cancellation, "
            "please contact us immediately."
        ),
        whatsapp=(
            "❌ *Order Update - Cancelled*\n\nHi {customer_name},\n\nYour order "
            "*{order_number}* has been cancelled.\n\nIf you did not request this, please "
            "contact us immediately.\n\nWe hope to serve you again soon!\n\n"
            "Team {store_name} 🛍️"
        ),
    ),
}

# Tenant-facing notices sent by the outbox worker
TENANT_OFFER_SUBJECT = "New order available - {order_number}"
TENANT_OFFER_TEXT = (
    "Hi {business_name},\n\nOrder {order_number} (₹{total_price}) is available to your store. "
    "Accept it from your dashboard before {expires_at}; the first store to accept gets it."
)
TENANT_LOST_SUBJECT = "Order no longer available - {order_number}"
TENANT_LOST_TEXT = (
    "Hi {business_name},\n\nOrder {order_number} has been accepted by another store and is "
    "no longer available."
)
TENANT_STATUS_SUBJECT = "Your {store_name} seller account is {status}"
TENANT_STATUS_TEXT = (
    "Hi {business_name},\n\nYour seller account status is now: {status}.{reason_line}"
)


def rupees(amount: Decimal) -> str:
    """Whole-rupee display value, rounded half up."""
    return str(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tracking_line(tracking_number: str | None) -> str:
    return f"📦 Tracking: {tracking_number}" if tracking_number else ""


def get_template(status: OrderStatus) -> StatusTemplate:
    return STATUS_TEMPLATES[status]


def list_templates() -> list[StatusTemplate]:
    return [STATUS_TEMPLATES[status] for status in OrderStatus]


def _context(order, store_name: str, tracking_number: str | None) -> dict:
    return {
        "customer_name": order.customer_name,
        "order_number": order.order_number,
        "total_price": rupees(order.total_price),
        "tracking_info": tracking_line(tracking_number),
        "store_name": store_name,
    }


def render_whatsapp(
    order, status: OrderStatus, store_name: str, tracking_number: str | None = None
) -> str:
    text = get_template(status).whatsapp.format(**_context(order, store_name, tracking_number))
    # Drop the blank line left behind when there is no tracking number
    return text.replace("\n\n\n", "\n\n")


def render_email(
    order,
    status: OrderStatus,
    store_name: str,
    order_url: str,
    support_email: str,
    tracking_number: str | None = None,
) -> RenderedMessage:
    template = get_template(status)
    context = _context(order, store_name, tracking_number)
    subject = template.subject.format(**context)

    lines = [
        f"Hi {order.customer_name},",
        "",
        template.message,
        "",
        f"Order Number: {order.order_number}",
        f"Status: {template.status}",
        f"Total: ₹{Decimal(order.total_price):.2f}",
    ]
    if tracking_number:
        lines.append(f"Tracking Number: {tracking_number}")
    lines += ["", f"View your order: {order_url}", "", f"Questions? Write to {support_email}"]
    text = "\n".join(lines)

    tracking_html = (
        f"<p><strong>📦 Tracking Number:</strong> {escape(tracking_number)}</p>"
        if tracking_number
        else ""
    )
    html = (
        f"<h1>{escape(store_name)}</h1>"
        f"<h2>{template.emoji} {template.title}</h2>"
        f"<p>{template.message}</p>{tracking_html}"
        f"<p>Order Number: <strong>{escape(order.order_number)}</strong><br>"
        f"Status: {template.status}<br>"
        f"Total: ₹{Decimal(order.total_price):.2f}</p>"
        f'<p><a href="{escape(order_url)}">View Order Details</a></p>'
        f'<p>Questions? <a href="mailto:{escape(support_email)}">{escape(support_email)}</a></p>'
    )
    return RenderedMessage(subject=subject, text=text, html=html)
