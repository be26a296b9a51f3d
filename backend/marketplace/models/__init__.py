from .statuses import DeliveryMode, OrderStatus, SlotStatus
from .tables import Base, Bookings, Orders, Tenants, Users, metadata, order_slots

__all__ = [
    "Base",
    "metadata",
    "Users",
    "Tenants",
    "Bookings",
    "Orders",
    "order_slots",
    "SlotStatus",
    "OrderStatus",
    "DeliveryMode",
]
