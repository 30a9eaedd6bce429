"""Builds the invoice document handed to the renderer."""

from __future__ import annotations

from src.config import settings
from src.models.order import Order


def _money(value) -> str:
    return f"{value:.2f}"


def build_invoice_document(order: Order) -> dict:
    """Everything the renderer needs, as plain JSON. Layout is the renderer's business."""
    address = order.shipping_address or {}
    lines = [
        {
            "productId": item.product_id,
            "name": item.name,
            "size": item.size,
            "giftWrap": item.gift_wrap,
            "quantity": item.quantity,
            "unitPrice": _money(item.price),
            "lineTotal": _money(item.line_total),
        }
        for item in order.items
    ]
    adjustments = [
        ("Packing", order.packing_price),
        ("Gift wrap", order.gift_wrap_price),
        ("Shipping", order.shipping_price),
        ("Tax", order.tax_price),
        ("Discount", -order.discount_price),
        ("Combo discount", -order.combo_discount),
        ("Coupon" + (f" ({order.coupon_code})" if order.coupon_code else ""), -order.coupon_discount),
    ]
    return {
        "seller": {
            "name": settings.store_name,
            "email": settings.support_email,
            "website": settings.storefront_url,
        },
        "orderId": str(order.id),
        "orderNumber": order.order_number,
        "orderDate": order.created_at.date().isoformat(),
        "orderStatus": order.order_status.value,
        "paymentMethod": order.payment_method.value,
        "paymentStatus": order.payment_status.value,
        "customer": {
            "name": address.get("name") or order.customer_name,
            "email": order.customer_email,
            "phone": address.get("phone"),
            "address": {
                "line1": address.get("addressLine1"),
                "line2": address.get("addressLine2"),
                "city": address.get("city"),
                "state": address.get("state"),
                "pincode": address.get("pincode"),
            },
        },
        "items": lines,
        "subtotal": _money(order.items_price),
        "adjustments": [
            {"label": label, "amount": _money(amount)} for label, amount in adjustments if amount
        ],
        "total": _money(order.total_price),
        "trackingNumber": order.tracking_number,
    }
