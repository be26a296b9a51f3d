"""
Pydantic schemas for the bookings (slots) API.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.statuses import DeliveryMode, SlotStatus


def to_naive_utc(value: datetime) -> datetime:
    """Store and compare everything as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SlotCreate(BaseModel):
    tenant_id: str = Field(min_length=1)
    start: datetime
    end: datetime
    mode: DeliveryMode

    @field_validator("start", "end")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        # "on-site" is accepted as a spelling of "onsite"
        if isinstance(v, str) and v.lower() == "on-site":
            return DeliveryMode.ONSITE
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class SlotRead(BaseModel):
    id: str
    tenant_id: str
    customer_id: Optional[str] = None

    start: datetime
    end: datetime

    mode: DeliveryMode
    status: SlotStatus
    service: Optional[str] = None

    model_config = {"from_attributes": True}
