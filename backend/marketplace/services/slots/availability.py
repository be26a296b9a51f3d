# backend/marketplace/services/slots/availability.py
"""
Calendar query: which slots exist for a tenant in [from, to).

Returns every status (available, booked, confirmed, canceled) so the
calendar can paint taken cells too. The whole answer comes from one
SELECT, so it is a single consistent read: a slot mid-reservation is
either seen before or after its conditional UPDATE, never half-way.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import BookingValidationError
from ...models.tables import Bookings
from ..tenants import resolve_tenant_id
from .config import BookingConfig, get_booking_config
from .store import SlotStore

logger = logging.getLogger(__name__)


def list_public_slots(
    db: Session,
    tenant_slug: str,
    from_: datetime,
    to: datetime,
    config: Optional[BookingConfig] = None,
) -> list[Bookings]:
    """
    List slots of a tenant intersecting [from_, to), ordered by start.

    Unknown tenant slug → empty list (the calendar simply renders empty).
    """
    if from_ >= to:
        raise BookingValidationError("'from' must be before 'to'")

    config = config or get_booking_config()

    tenant_id = resolve_tenant_id(db, tenant_slug)
    if tenant_id is None:
        logger.debug(f"list_public_slots: unknown tenant slug {tenant_slug!r}")
        return []

    return SlotStore(db).find_many(
        tenant_id=tenant_id,
        start_before=to,
        end_after=from_,
        order_by="start",
        limit=config.public_slots_limit,
    )
