import enum


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    PROCESSING = "Processing"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, enum.Enum):
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "NetBanking"
    COD = "COD"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TenantStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class OfferOutcome(str, enum.Enum):
    PENDING = "pending"
    CLAIMED = "claimed"
    REJECTED = "rejected"
    DECLINED = "declined"
    EXPIRED = "expired"


class NotificationChannel(str, enum.Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class NotificationOutcome(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    LINK_GENERATED = "link_generated"


class CallerRole(str, enum.Enum):
    PLATFORM_ADMIN = "platform_admin"
    TENANT = "tenant"
    CUSTOMER = "customer"


class CommissionBase(str, enum.Enum):
    TOTAL_PRICE = "total_price"
    ITEMS_PRICE = "items_price"


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
