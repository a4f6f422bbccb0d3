# backend/booking_api/schemas/bookings.py

from datetime import datetime
from typing import Any, Optional
from pydantic import Field

from .common import CamelModel, UtcDatetime


class BookingCreate(CamelModel):
    activity_id: int
    # Aware timestamps are converted to UTC; naive ones are taken as UTC
    slot_start: datetime
    participants_count: int = Field(ge=1)
    selection_data: dict[str, Any] = {}


class BookingCancel(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingRead(CamelModel):
    id: int

    activity_id: int
    business_id: int
    user_id: int

    slot_start: UtcDatetime
    duration_minutes: int
    participants_count: int

    status: str

    activity_snapshot: dict[str, Any]
    business_snapshot: dict[str, Any]
    selection_snapshot: dict[str, Any]
    price_snapshot: dict[str, Any]

    payment_amount: Optional[float] = None
    payment_currency: Optional[str] = None
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None

    created_at: UtcDatetime


class BookingList(CamelModel):
    items: list[BookingRead]
    next_cursor: Optional[str] = None


class BusinessStats(CamelModel):
    today_count: int
    upcoming_count: int
    total_revenue: str
