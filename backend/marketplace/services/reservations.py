# backend/marketplace/services/reservations.py
"""
Slot reservation at checkout and the order transitions around it.

Contract: at most one customer holds a given slot in `booked` at a time.

reserve_slots() issues the conditional available → booked update for the
whole requested set inside ONE database transaction. If any id fails to
transition (race lost, not available, foreign tenant, already started),
the transaction is rolled back, which restores every id that did
transition to available / customer=NULL, and a SlotConflictError names the
ids that were unavailable. No order is created in that case, so a checkout
attempt is all-or-nothing.

The payment collaborator drives the rest of the order lifecycle:
- confirm_order_payment(): pending → paid, slots booked → confirmed
- cancel_pending_order():  pending → canceled, slots booked → available
The stale-reservation sweeper reuses cancel_and_release().
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import BookingValidationError, SlotConflictError
from ..models.statuses import OrderStatus, SlotStatus
from ..models.tables import Bookings, Orders, utcnow
from .events import emit_event
from .orders import attach_slots, get_order_or_404, order_slot_ids, update_order_status
from .slots import BookingConfig, SlotStore, get_booking_config, unique_ids
from .tenants import get_tenant_or_404

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseOutcome:
    canceled: bool
    released: int
    requested: int


def _amount_cents(slots: list[Bookings], hourly_rate: float) -> int:
    """Order total from slot durations and the tenant hourly rate."""
    hours = sum(
        max(0.0, (slot.end - slot.start).total_seconds() / 3600) for slot in slots
    )
    return round(hours * hourly_rate * 100)


def reserve_slots(
    db: Session,
    tenant_id: str,
    slot_ids: Iterable[str],
    customer_id: str,
    ttl_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
    config: Optional[BookingConfig] = None,
    services: Optional[Mapping[str, str]] = None,
) -> Orders:
    """
    Reserve slots for a customer and open a pending order.

    Args:
        db: Database session
        tenant_id: Tenant all slots must belong to
        slot_ids: Requested slot ids (duplicates ignored, order kept)
        customer_id: Reserving user id
        ttl_seconds: Reservation window, defaults to config
        now: Reference time (tests)
        services: Optional service label per slot id, stored on the slot

    Returns:
        The pending order, reserved_until = now + ttl.

    Raises:
        SlotConflictError: some ids could not be reserved; nothing changed.
        BookingValidationError: empty request or a non-positive total.
    """
    config = config or get_booking_config()
    now = now or utcnow()
    ttl = config.reservation_ttl_seconds if ttl_seconds is None else ttl_seconds

    ids = unique_ids(slot_ids)
    if not ids:
        raise BookingValidationError("At least one slot id is required")
    if ttl <= 0:
        raise BookingValidationError("ttl_seconds must be positive")

    services = dict(services or {})
    stray = [slot_id for slot_id in services if slot_id not in ids]
    if stray:
        raise BookingValidationError(f"Service given for slots not in the request: {stray}")

    tenant = get_tenant_or_404(db, tenant_id)
    hourly_rate = tenant.hourly_rate or 0.0
    if hourly_rate <= 0:
        raise BookingValidationError("Invalid total amount")

    store = SlotStore(db)
    try:
        booked = store.update_status(
            ids,
            SlotStatus.AVAILABLE,
            SlotStatus.BOOKED,
            customer_id=customer_id,
            service=services,
            tenant_id=tenant_id,
            starts_after=now,
        )

        if len(booked) != len(ids):
            booked_set = set(booked)
            unavailable = [slot_id for slot_id in ids if slot_id not in booked_set]
            db.rollback()
            logger.info(
                f"Reservation conflict customer={customer_id} tenant={tenant_id}: "
                f"{len(unavailable)}/{len(ids)} slot(s) unavailable {unavailable}"
            )
            raise SlotConflictError(unavailable)

        amount = _amount_cents(store.find_many(ids=booked), hourly_rate)
        if amount <= 0:
            db.rollback()
            raise BookingValidationError("Invalid total amount")

        order = Orders(
            user_id=customer_id,
            tenant_id=tenant_id,
            status=OrderStatus.PENDING,
            reserved_until=now + timedelta(seconds=ttl),
            amount=amount,
            currency=config.currency,
            application_fee=config.fee_for(amount),
        )
        db.add(order)
        db.flush()
        attach_slots(db, order.id, booked)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        f"Order {order.id} pending: {len(booked)} slot(s) reserved for "
        f"customer={customer_id} until {order.reserved_until.isoformat()}"
    )
    emit_event("slots_reserved", {
        "order_id": order.id,
        "tenant_id": tenant_id,
        "customer_id": customer_id,
        "slot_ids": booked,
    })
    return order


def release_order_slots(db: Session, slot_ids: list[str], customer_id: str) -> list[str]:
    """
    Release booked slots of an order back to available.

    The customer and the service label chosen at checkout are cleared.

    Restricted to slots still booked by the order's customer, so a slot
    that was released earlier and re-booked by someone else is left alone.
    """
    return SlotStore(db).update_status(
        slot_ids,
        SlotStatus.BOOKED,
        SlotStatus.AVAILABLE,
        customer_id=None,
        service=None,
        match_customer_id=customer_id,
    )


def cancel_and_release(
    db: Session,
    order_id: str,
    customer_id: str,
    slot_ids: list[str],
) -> ReleaseOutcome:
    """
    Cancel a pending order and release its slots (caller commits).

    The cancel is conditioned on status=pending: if payment completed in
    the meantime the order stays paid and no slot is touched.
    """
    if not update_order_status(db, order_id, OrderStatus.PENDING, OrderStatus.CANCELED):
        return ReleaseOutcome(canceled=False, released=0, requested=len(slot_ids))

    released = release_order_slots(db, slot_ids, customer_id)
    return ReleaseOutcome(canceled=True, released=len(released), requested=len(slot_ids))


def cancel_pending_order(db: Session, order_id: str) -> Orders:
    """Checkout abandoned/expired: cancel the order if still pending. Idempotent."""
    order = get_order_or_404(db, order_id)
    if order.status != OrderStatus.PENDING:
        return order

    customer_id = order.user_id
    slot_ids = order_slot_ids(db, order_id)
    try:
        outcome = cancel_and_release(db, order_id, customer_id, slot_ids)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if outcome.canceled:
        logger.info(
            f"Canceled order {order_id} and released "
            f"{outcome.released}/{outcome.requested} booking(s)."
        )
        emit_event("order_canceled", {
            "order_id": order_id,
            "customer_id": customer_id,
            "reason": "checkout_expired",
        })
    return order


def confirm_order_payment(
    db: Session,
    order_id: str,
    *,
    payment_intent_id: Optional[str] = None,
    checkout_session_id: Optional[str] = None,
    receipt_url: Optional[str] = None,
) -> Orders:
    """
    Payment captured: pending → paid, slots booked → confirmed.

    Webhooks are retried, so a non-pending order is returned untouched.
    """
    order = get_order_or_404(db, order_id)
    if order.status != OrderStatus.PENDING:
        logger.info(f"Order {order_id} already {order.status.value}, payment ignored")
        return order

    customer_id = order.user_id
    slot_ids = order_slot_ids(db, order_id)
    values = {
        key: value
        for key, value in (
            ("payment_intent_id", payment_intent_id),
            ("checkout_session_id", checkout_session_id),
            ("receipt_url", receipt_url),
        )
        if value is not None
    }

    try:
        if not update_order_status(
            db, order_id, OrderStatus.PENDING, OrderStatus.PAID, **values
        ):
            db.rollback()
            return get_order_or_404(db, order_id)

        confirmed = SlotStore(db).update_status(
            slot_ids,
            SlotStatus.BOOKED,
            SlotStatus.CONFIRMED,
            match_customer_id=customer_id,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if len(confirmed) != len(slot_ids):
        logger.warning(
            f"Order {order_id} paid but only {len(confirmed)}/{len(slot_ids)} "
            f"slot(s) were still booked by customer={customer_id}"
        )
    else:
        logger.info(f"Order {order_id} paid, {len(confirmed)} slot(s) confirmed")

    emit_event("order_paid", {
        "order_id": order_id,
        "customer_id": customer_id,
        "slot_ids": confirmed,
    })
    return order
