"""
Stale-reservation sweeper.

Periodically cancels pending orders whose reserved_until has passed and
releases their slots back to available.

Each order is handled in its own session and transaction: one order
failing is logged and the sweep moves on. The cancel is conditioned on
status=pending, so a payment that lands between the scan and the cancel
keeps the order paid.

Runs as an asyncio task in the backend lifespan (synchronous DB work via
asyncio.to_thread), or once from scripts/sweep_stale_orders.py.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..database import SessionLocal
from ..models.statuses import OrderStatus
from ..models.tables import Orders, utcnow
from .events import emit_event
from .reservations import cancel_and_release

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaleOrder:
    id: str
    user_id: str
    slot_ids: list[str]


@dataclass
class SweepResult:
    scanned: int = 0
    canceled: int = 0
    skipped: int = 0
    failed: int = 0
    slots_released: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def find_stale_orders(db: Session, now: datetime) -> list[StaleOrder]:
    """Pending orders whose reservation window ended before `now`."""
    orders = db.scalars(
        select(Orders)
        .where(
            Orders.status == OrderStatus.PENDING,
            Orders.reserved_until < now,
        )
        .options(selectinload(Orders.slots))
        .order_by(Orders.reserved_until)
    ).all()
    return [StaleOrder(o.id, o.user_id, o.slot_ids) for o in orders]


def sweep_stale_reservations(
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> SweepResult:
    """Cancel expired pending orders and release their slots (synchronous)."""
    now = now or utcnow()
    result = SweepResult()

    db = session_factory()
    try:
        stale = find_stale_orders(db, now)
    finally:
        db.close()

    if not stale:
        logger.debug("No pending orders past reserved_until.")
        return result

    result.scanned = len(stale)

    for order in stale:
        db = session_factory()
        try:
            outcome = cancel_and_release(db, order.id, order.user_id, order.slot_ids)
            db.commit()
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception(f"Error sweeping stale order {order.id}")
            continue
        finally:
            db.close()

        if not outcome.canceled:
            # Paid (or otherwise moved on) after the scan
            result.skipped += 1
            logger.info(f"Order {order.id} no longer pending, left untouched")
            continue

        result.canceled += 1
        result.slots_released += outcome.released

        if outcome.requested:
            logger.info(
                f"Canceled order {order.id} and released "
                f"{outcome.released}/{outcome.requested} booking(s)."
            )
        else:
            logger.info(f"Canceled order {order.id} (no slots to release).")

        emit_event("order_canceled", {
            "order_id": order.id,
            "customer_id": order.user_id,
            "reason": "reservation_expired",
        })

    logger.info(
        f"Sweep done: scanned={result.scanned} canceled={result.canceled} "
        f"skipped={result.skipped} failed={result.failed} "
        f"released={result.slots_released}"
    )
    return result


async def reservation_sweeper_loop() -> None:
    """
    Periodic loop that runs the sweep every `sweep_interval_seconds`.
    """
    logger.info("reservation_sweeper_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(sweep_stale_reservations)
            except asyncio.CancelledError:
                logger.info("reservation_sweeper_loop cancelled")
                raise
            except Exception:
                logger.exception("reservation_sweeper_loop error")

            await asyncio.sleep(settings.sweep_interval_seconds)
    except asyncio.CancelledError:
        pass
