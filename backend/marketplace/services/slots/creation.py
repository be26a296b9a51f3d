# backend/marketplace/services/slots/creation.py
"""
Idempotent creation of "available" slots.

The tenant calendar fires createAvailableSlot on every grid click and
replays it freely (double-invoke in dev, re-clicks), so an exact
(tenant, start, end) duplicate is answered with the existing slot instead
of an error. A partially overlapping interval is a real conflict.

Insert-then-verify: the row is inserted first (taking the write lock on
SQLite), then overlaps are checked excluding the new row, all in one
transaction. A concurrent replay that slips past the first lookup hits
the partial unique index and is turned into the "already exists" answer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import BookingValidationError, SlotOverlapError, UnauthorizedError
from ...models.statuses import DeliveryMode
from ...models.tables import Bookings, Users
from ..tenants import assert_tenant_owner, get_tenant_or_404
from .config import BookingConfig, get_booking_config
from .store import SlotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotCreation:
    slot: Bookings
    created: bool


def validate_slot_interval(start: datetime, end: datetime, config: BookingConfig) -> None:
    if start >= end:
        raise BookingValidationError("start must be before end")
    if end - start != config.slot_duration:
        raise BookingValidationError(
            f"Slots must last exactly {config.slot_minutes} minutes"
        )
    if not config.is_aligned(start):
        raise BookingValidationError(
            f"Slot start must be aligned to the {config.slot_minutes}-minute grid"
        )


def create_available_slot(
    db: Session,
    user: Optional[Users],
    tenant_id: str,
    start: datetime,
    end: datetime,
    mode: DeliveryMode,
    config: Optional[BookingConfig] = None,
) -> SlotCreation:
    """
    Create an available slot for a tenant the caller owns.

    Returns:
        SlotCreation(slot, created=True) for a new row,
        SlotCreation(existing, created=False) for an exact duplicate.

    Raises:
        UnauthorizedError / ForbiddenError / NotFoundError on access checks,
        BookingValidationError on a bad interval,
        SlotOverlapError when the interval partially overlaps another slot.
    """
    config = config or get_booking_config()

    if user is None:
        raise UnauthorizedError()
    tenant = get_tenant_or_404(db, tenant_id)
    assert_tenant_owner(tenant, user)
    validate_slot_interval(start, end, config)

    store = SlotStore(db)

    existing = store.find_exact(tenant_id, start, end)
    if existing:
        logger.info(f"Slot already exists tenant={tenant_id} start={start.isoformat()}")
        return SlotCreation(existing, False)

    try:
        slot = store.insert(tenant_id, start, end, DeliveryMode(mode))
    except IntegrityError:
        db.rollback()
        existing = store.find_exact(tenant_id, start, end)
        if existing is None:
            raise
        logger.info(f"Slot created concurrently tenant={tenant_id} start={start.isoformat()}")
        return SlotCreation(existing, False)

    overlapping = store.find_overlapping(tenant_id, start, end, exclude_id=slot.id)
    if overlapping:
        db.rollback()
        raise SlotOverlapError([s.id for s in overlapping])

    db.commit()
    db.refresh(slot)

    logger.info(
        f"Slot {slot.id} created tenant={tenant_id} "
        f"{start.isoformat()}–{end.isoformat()} mode={slot.mode.value}"
    )
    return SlotCreation(slot, True)
