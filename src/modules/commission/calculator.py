"""Pure commission arithmetic."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

PAISA = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CommissionBreakdown:
    base: Decimal
    rate: Decimal
    commission_amount: Decimal
    net_to_tenant: Decimal


def calculate_commission(base: Decimal, rate: Decimal) -> CommissionBreakdown:
    """Split ``base`` into the platform's commission and the tenant's net.

    The commission is rounded half up to the paisa and the net is whatever
    remains, so ``commission_amount + net_to_tenant == base`` always holds.

    >>> calculate_commission(Decimal("1000"), Decimal("10")).commission_amount
    Decimal('100.00')
    """
    base = Decimal(base)
    rate = Decimal(rate)
    if base < 0:
        raise ValueError(f"Commission base must not be negative, got {base}")
    if rate < 0 or rate > HUNDRED:
        raise ValueError(f"Commission rate must be between 0 and 100, got {rate}")

    base = base.quantize(PAISA, rounding=ROUND_HALF_UP)
    commission = (base * rate / HUNDRED).quantize(PAISA, rounding=ROUND_HALF_UP)
    return CommissionBreakdown(
        base=base,
        rate=rate,
        commission_amount=commission,
        net_to_tenant=base - commission,
    )
