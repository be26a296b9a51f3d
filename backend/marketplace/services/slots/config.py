# backend/marketplace/services/slots/config.py
"""
Booking configuration for slot creation, reservation and listing.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from ...config import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the booking/slots core.

    Attributes:
        slot_minutes: Calendar grid step and length of one slot (15/30/60)
        reservation_ttl_seconds: How long a pending order holds its slots
        public_slots_limit: Max slots returned by one calendar query
        orders_page_size: Orders returned by the customer history
        platform_fee_percent: Platform fee taken from each order
        currency: Order currency (ISO 4217, lower case)
    """
    slot_minutes: int = 60  # 15 / 30 / 60
    reservation_ttl_seconds: int = 900
    public_slots_limit: int = 500
    orders_page_size: int = 25
    platform_fee_percent: int = 10
    currency: str = "eur"

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_minutes not in (15, 30, 60):
            raise ValueError(f"slot_minutes must be 15, 30, or 60, got {self.slot_minutes}")
        if self.reservation_ttl_seconds <= 0:
            raise ValueError("reservation_ttl_seconds must be positive")

    @property
    def slot_duration(self) -> timedelta:
        return timedelta(minutes=self.slot_minutes)

    def is_aligned(self, moment: datetime) -> bool:
        """True when moment sits exactly on the slot grid."""
        if moment.second or moment.microsecond:
            return False
        return (moment.hour * 60 + moment.minute) % self.slot_minutes == 0

    def fee_for(self, amount_cents: int) -> int:
        return max(0, round(amount_cents * self.platform_fee_percent / 100))


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton)."""
    return BookingConfig(reservation_ttl_seconds=settings.reservation_ttl_seconds)
