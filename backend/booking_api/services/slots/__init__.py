# backend/booking_api/services/slots/__init__.py
"""
Slots module.

Grid: template → slot starts for a date (pure, cached in Redis Sorted Sets)
Availability: grid + booked participants (see availability.py, always live)
"""

from .config import BookingConfig, get_booking_config
from .generator import generate_slots, slot_id
from .redis_store import SlotsRedisStore
from .invalidator import invalidate_template_cache

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "generate_slots",
    "slot_id",
    "SlotsRedisStore",
    "invalidate_template_cache",
]
