# backend/marketplace/routers/orders.py

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_current_user, get_optional_user
from ..models.statuses import HISTORY_ORDER_STATUSES
from ..models.tables import Users
from ..schemas.orders import HasPaidOrdersResponse, OrderRead
from ..services.orders import has_any_order, list_orders_for_user
from ..services.slots import get_booking_config

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/mine", response_model=list[OrderRead])
def list_mine(
    user: Users = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Paid and refunded orders of the caller, newest first."""
    config = get_booking_config()
    return list_orders_for_user(
        db, user.id, HISTORY_ORDER_STATUSES, limit=config.orders_page_size
    )


@router.get("/mine/has-paid", response_model=HasPaidOrdersResponse)
def has_any_paid_mine(
    user: Optional[Users] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if user is None:
        return HasPaidOrdersResponse(has_any=False)
    return HasPaidOrdersResponse(has_any=has_any_order(db, user.id, HISTORY_ORDER_STATUSES))
