# backend/marketplace/routers/bookings.py
"""
Bookings (slots) API endpoints.

GET  /bookings/public-slots - Tenant calendar for [from, to), any status
POST /bookings/slots        - Create an available slot (tenant owner only)
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_optional_user
from ..models.tables import Users
from ..schemas.bookings import SlotCreate, SlotRead, to_naive_utc
from ..services.slots import create_available_slot, list_public_slots

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/public-slots", response_model=list[SlotRead])
def list_public_slots_endpoint(
    tenant_slug: str,
    from_: datetime = Query(..., alias="from"),
    to: datetime = Query(...),
    db: Session = Depends(get_db),
):
    """Slots of a tenant intersecting [from, to), ordered by start."""
    return list_public_slots(db, tenant_slug, to_naive_utc(from_), to_naive_utc(to))


@router.post(
    "/slots",
    response_model=SlotRead,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Slot already exists (idempotent replay)"}},
)
def create_available_slot_endpoint(
    data: SlotCreate,
    response: Response,
    user: Optional[Users] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    result = create_available_slot(
        db,
        user,
        tenant_id=data.tenant_id,
        start=data.start,
        end=data.end,
        mode=data.mode,
    )
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.slot
