# backend/marketplace/routers/checkout.py

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_current_user
from ..models.tables import Users
from ..schemas.orders import OrderRead, ReserveRequest
from ..services.orders import get_order_by_session_id
from ..services.reservations import reserve_slots

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/reserve", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def reserve(
    data: ReserveRequest,
    user: Users = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Reserve slots and open a pending order.

    409 with `unavailable_ids` when any slot is taken; nothing is reserved then.
    """
    return reserve_slots(
        db, data.tenant_id, data.slot_ids, customer_id=user.id, services=data.services
    )


@router.get("/orders/by-session/{session_id}", response_model=Optional[OrderRead])
def order_by_session(session_id: str, db: Session = Depends(get_db)):
    """
    Order of a payment checkout session, polled by the success page.

    null until the payment bridge has attached the session to an order.
    """
    return get_order_by_session_id(db, session_id)
