"""Assignment engine event types."""

EVENT_ORDER_ASSIGNED = "order.assigned"
EVENT_ORDER_BROADCAST = "order.broadcast"

MODE_DIRECT = "direct"
MODE_BROADCAST = "broadcast"
MODE_CLAIM = "claim"
