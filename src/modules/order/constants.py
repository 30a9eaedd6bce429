"""Order store constants and outbox event types."""

from src.models.enums import OrderStatus

ORDER_NUMBER_PREFIX = "PK"
ORDER_NUMBER_ATTEMPTS = 5

# Customers may withdraw an order until it has left the tenant's hands
CUSTOMER_CANCELLABLE_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.PROCESSING, OrderStatus.PACKED}
)

EVENT_ORDER_CREATED = "order.created"
