# backend/booking_api/schemas/availability.py

from typing import Optional

from .common import CamelModel, UtcDatetime


class SlotAvailability(CamelModel):
    slot_id: str
    slot_start: UtcDatetime
    time: str  # "HH:MM", business local time
    available: bool
    remaining_capacity: int
    capacity: int


class AvailabilityResponse(CamelModel):
    activity_id: int
    date: str
    party_size: int
    slot_duration_minutes: Optional[int] = None
    capacity: Optional[int] = None
    slots: list[SlotAvailability] = []
