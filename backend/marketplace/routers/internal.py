# backend/marketplace/routers/internal.py
"""
Internal API endpoints for trusted consumers.

These endpoints are NOT exposed publicly. They are called directly by
trusted services on the same host:
- the payment webhook bridge (checkout completed / expired)
- cron, to trigger a reservation sweep on demand

Access: localhost only (settings.internal_allowed_hosts)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_internal_caller
from ..schemas.orders import OrderRead, PaymentConfirmation, SweepResponse
from ..services.reservation_sweeper import sweep_stale_reservations
from ..services.reservations import cancel_pending_order, confirm_order_payment

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_caller)],
)


@router.post("/orders/{order_id}/paid", response_model=OrderRead)
def order_paid(
    order_id: str,
    data: Optional[PaymentConfirmation] = None,
    db: Session = Depends(get_db),
):
    """Checkout completed: pending → paid, slots booked → confirmed."""
    data = data or PaymentConfirmation()
    return confirm_order_payment(
        db,
        order_id,
        payment_intent_id=data.payment_intent_id,
        checkout_session_id=data.checkout_session_id,
        receipt_url=data.receipt_url,
    )


@router.post("/orders/{order_id}/expire", response_model=OrderRead)
def order_expired(order_id: str, db: Session = Depends(get_db)):
    """Checkout session expired: cancel the pending order, release its slots."""
    return cancel_pending_order(db, order_id)


@router.post("/sweep", response_model=SweepResponse)
def sweep():
    """Run one stale-reservation sweep now."""
    result = sweep_stale_reservations()
    logger.info(f"Manual sweep: {result.to_dict()}")
    return result.to_dict()
