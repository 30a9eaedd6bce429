# Import all models so SQLAlchemy metadata is populated for Alembic and create_all
from src.models.enums import (
    CallerRole,
    CommissionBase,
    EventStatus,
    NotificationChannel,
    NotificationOutcome,
    OfferOutcome,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TenantStatus,
)
from src.models.event_outbox import EventOutbox
from src.models.notification_record import NotificationRecord
from src.models.order import Order
from src.models.order_item import OrderItem
from src.models.order_offer import OrderOffer
from src.models.order_status_history import OrderStatusHistory
from src.models.processed_event import ProcessedEvent
from src.models.tenant import Tenant
