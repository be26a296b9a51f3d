"""
Pydantic schemas for checkout and orders API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.statuses import OrderStatus
from .bookings import SlotRead


class ReserveRequest(BaseModel):
    """Checkout: reserve these slots of one tenant."""
    tenant_id: str = Field(min_length=1)
    slot_ids: list[str] = Field(min_length=1)
    services: dict[str, str] = Field(
        default_factory=dict,
        description="Optional service label per slot id",
    )


class OrderRead(BaseModel):
    id: str
    user_id: str
    tenant_id: str
    status: OrderStatus
    reserved_until: Optional[datetime] = None

    amount: int = Field(description="Total amount in cents")
    currency: str
    application_fee: Optional[int] = None
    receipt_url: Optional[str] = None

    slots: list[SlotRead] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class HasPaidOrdersResponse(BaseModel):
    has_any: bool


class PaymentConfirmation(BaseModel):
    """Body sent by the payment webhook bridge."""
    payment_intent_id: Optional[str] = None
    checkout_session_id: Optional[str] = None
    receipt_url: Optional[str] = None


class SweepResponse(BaseModel):
    scanned: int
    canceled: int
    skipped: int
    failed: int
    slots_released: int
