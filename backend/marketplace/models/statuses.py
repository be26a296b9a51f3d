"""
Closed status variants for slots and orders.

Slot lifecycle:
    available ──reserve──▶ booked ──paid──▶ confirmed
        ▲                    │
        └─────release────────┘
    canceled is terminal; a new slot must be created for that interval.

Order lifecycle:
    pending ──▶ paid ──▶ refunded
       └──────▶ canceled
"""

import enum

from ..errors import InvalidTransitionError


class SlotStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class DeliveryMode(str, enum.Enum):
    ONLINE = "online"
    ONSITE = "onsite"  # canonical; "on-site" is accepted on input (schemas/bookings.py)


SLOT_TRANSITIONS: dict[SlotStatus, frozenset[SlotStatus]] = {
    SlotStatus.AVAILABLE: frozenset({SlotStatus.BOOKED, SlotStatus.CANCELED}),
    SlotStatus.BOOKED: frozenset(
        {SlotStatus.AVAILABLE, SlotStatus.CONFIRMED, SlotStatus.CANCELED}
    ),
    SlotStatus.CONFIRMED: frozenset({SlotStatus.CANCELED}),
    SlotStatus.CANCELED: frozenset(),
}

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELED}),
    OrderStatus.PAID: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.CANCELED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}

# Statuses that occupy their interval on the tenant calendar
ACTIVE_SLOT_STATUSES = (SlotStatus.AVAILABLE, SlotStatus.BOOKED, SlotStatus.CONFIRMED)

# Orders shown in the customer-facing history
HISTORY_ORDER_STATUSES = (OrderStatus.PAID, OrderStatus.REFUNDED)


def ensure_slot_transition(current: SlotStatus, target: SlotStatus) -> None:
    current, target = SlotStatus(current), SlotStatus(target)
    if target not in SLOT_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Slot cannot move from {current.value} to {target.value}"
        )


def ensure_order_transition(current: OrderStatus, target: OrderStatus) -> None:
    current, target = OrderStatus(current), OrderStatus(target)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Order cannot move from {current.value} to {target.value}"
        )
