"""Order price arithmetic.

All amounts are ``Decimal`` rupees with two places. The total is always
derived from its components; nothing stores a total that was computed
anywhere else.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.exceptions import AppException, ValidationException
from src.models.enums import OrderStatus

PAISA = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Normalise a number to two decimal places, rounding half up."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(PAISA, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    items_price: Decimal
    packing_price: Decimal = ZERO
    gift_wrap_price: Decimal = ZERO
    shipping_price: Decimal = ZERO
    tax_price: Decimal = ZERO
    discount_price: Decimal = ZERO
    combo_discount: Decimal = ZERO
    coupon_discount: Decimal = ZERO

    @property
    def charges(self) -> Decimal:
        return (
            self.items_price
            + self.packing_price
            + self.gift_wrap_price
            + self.shipping_price
            + self.tax_price
        )

    @property
    def discounts(self) -> Decimal:
        return self.discount_price + self.combo_discount + self.coupon_discount

    @property
    def total_price(self) -> Decimal:
        return to_money(self.charges - self.discounts)

    @classmethod
    def of(cls, order) -> PriceBreakdown:
        """Read the components off an order (or anything shaped like one)."""
        return cls(
            items_price=order.items_price,
            packing_price=order.packing_price,
            gift_wrap_price=order.gift_wrap_price,
            shipping_price=order.shipping_price,
            tax_price=order.tax_price,
            discount_price=order.discount_price,
            combo_discount=order.combo_discount or ZERO,
            coupon_discount=order.coupon_discount or ZERO,
        )


def items_subtotal(lines: Iterable[tuple[Decimal, int]]) -> Decimal:
    """Sum of ``price * quantity`` over (price, quantity) pairs."""
    return to_money(sum((price * quantity for price, quantity in lines), ZERO))


def validate_breakdown(breakdown: PriceBreakdown, lines: Iterable[tuple[Decimal, int]]) -> None:
    """Reject a checkout payload whose numbers do not add up."""
    components = {
        name: getattr(breakdown, name)
        for name in (
            "items_price",
            "packing_price",
            "gift_wrap_price",
            "shipping_price",
            "tax_price",
            "discount_price",
            "combo_discount",
            "coupon_discount",
        )
    }
    negative = [
        {"field": name, "message": "must not be negative"}
        for name, value in components.items()
        if value < 0
    ]
    if negative:
        raise ValidationException("Price components must not be negative", details=negative)

    subtotal = items_subtotal(lines)
    if subtotal != to_money(breakdown.items_price):
        raise ValidationException(
            f"itemsPrice {breakdown.items_price} does not match the item lines ({subtotal})",
            details=[{"field": "itemsPrice", "message": f"expected {subtotal}"}],
        )

    if breakdown.total_price < 0:
        raise ValidationException(
            "Discounts exceed the order value",
            details=[{"field": "totalPrice", "message": "must not be negative"}],
        )


def assert_order_consistent(order) -> None:
    """Check the stored order against its derived fields.

    Runs after every mutation; a failure means a bug wrote inconsistent
    state, so the surrounding transaction is aborted with a 500.
    """
    expected = PriceBreakdown.of(order).total_price
    if to_money(order.total_price) != expected:
        raise AppException(
            f"Order {order.order_number} total {order.total_price} != components {expected}"
        )
    if order.routed_to_tenant != (order.tenant_id is not None):
        raise AppException(f"Order {order.order_number} routing flag disagrees with its tenant")
    settled = order.commission_amount is not None
    if settled != (order.order_status == OrderStatus.DELIVERED):
        raise AppException(
            f"Order {order.order_number} commission snapshot disagrees with status "
            f"{order.order_status.value}"
        )
