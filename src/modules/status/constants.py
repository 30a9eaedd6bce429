"""Order status sequence, transition rules and outbox event types."""

from __future__ import annotations

from src.exceptions import IllegalTransitionException
from src.models.enums import CallerRole, OrderStatus

# Canonical fulfilment sequence; Cancelled sits outside it
STATUS_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

EVENT_ORDER_STATUS_CHANGED = "order.status_changed"


def get_next_status(current: OrderStatus) -> OrderStatus | None:
    """The single status a tenant may advance to, or None at the end of the line."""
    if current in TERMINAL_STATUSES:
        return None
    index = STATUS_SEQUENCE.index(current)
    return STATUS_SEQUENCE[index + 1]


def tenant_allowed_targets(current: OrderStatus) -> set[OrderStatus]:
    """Statuses a tenant may move ``current`` to."""
    next_status = get_next_status(current)
    if next_status is None:
        return set()
    return {next_status, OrderStatus.CANCELLED}


def check_transition(role: CallerRole, current: OrderStatus, target: OrderStatus) -> None:
    """Raise IllegalTransitionException unless ``role`` may move ``current`` to ``target``.

    Same-status requests are handled by the caller as no-ops and never reach
    this check. Customers are rejected before this point as well.
    """
    if current in TERMINAL_STATUSES:
        raise IllegalTransitionException(
            f"Order is {current.value}; no further status changes are allowed"
        )
    if role == CallerRole.PLATFORM_ADMIN:
        return
    allowed = tenant_allowed_targets(current)
    if target not in allowed:
        allowed_labels = ", ".join(sorted(s.value for s in allowed))
        raise IllegalTransitionException(
            f"Cannot move order from {current.value} to {target.value}. "
            f"Allowed: {allowed_labels}",
            details=[
                {"field": "status", "message": f"allowed: {allowed_labels}"},
            ],
        )
