# backend/booking_api/services/slots/config.py
"""
Booking configuration for slot generation, availability and reservations.
"""

from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...config import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for the booking/slots system.

    Attributes:
        timezone: IANA zone of template opening hours ("Europe/Luxembourg")
        horizon_days: How many days ahead availability is resolved
        cancellation_cutoff_minutes: Cancellation closes this long before slot start
        cache_ttl_seconds: Redis TTL for generated slot grids
        max_attempts: Transaction attempts on transient storage errors
        retry_backoff_ms: Linear backoff step between attempts
    """
    timezone: str = "Europe/Luxembourg"
    horizon_days: int = 90
    cancellation_cutoff_minutes: int = 0
    cache_ttl_seconds: int = 86400
    max_attempts: int = 3
    retry_backoff_ms: int = 50

    def __post_init__(self):
        """Validate configuration."""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.timezone!r}")
        if self.horizon_days < 0:
            raise ValueError(f"horizon_days must be >= 0, got {self.horizon_days}")
        if self.cancellation_cutoff_minutes < 0:
            raise ValueError(
                f"cancellation_cutoff_minutes must be >= 0, got {self.cancellation_cutoff_minutes}"
            )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton) from settings."""
    return BookingConfig(
        timezone=settings.timezone,
        horizon_days=settings.horizon_days,
        cancellation_cutoff_minutes=settings.cancellation_cutoff_minutes,
        cache_ttl_seconds=settings.slots_cache_ttl_seconds,
        max_attempts=settings.booking_max_attempts,
        retry_backoff_ms=settings.booking_retry_backoff_ms,
    )


def time_str_to_minutes(value: str) -> int:
    """"HH:MM" (or "HH:MM:SS") → minutes since midnight. "24:00" is allowed as end of day."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= minutes < 60) or not (0 <= hours <= 24) or (hours == 24 and minutes):
        raise ValueError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def minutes_to_time_str(total_minutes: int) -> str:
    """Minutes since midnight → "HH:MM"."""
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"
