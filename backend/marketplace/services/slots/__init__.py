# backend/marketplace/services/slots/__init__.py
"""
Slots module.

Store: conditional status updates on the `bookings` table
Availability: calendar query for a tenant and time range
Creation: idempotent creation of available slots
"""

from .config import BookingConfig, get_booking_config
from .store import SlotStore, unique_ids
from .availability import list_public_slots
from .creation import SlotCreation, create_available_slot

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "SlotStore",
    "unique_ids",
    "list_public_slots",
    "SlotCreation",
    "create_available_slot",
]
