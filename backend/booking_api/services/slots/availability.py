# backend/booking_api/services/slots/availability.py
"""
Availability resolution for an activity on a date.

Combines:
- The slot grid of the activity's active template (generator, Redis-cached)
- Booked participants per slot (ledger, aggregated on every call)

Read-only: no locks, no writes. Safe to call concurrently.
"""

from datetime import date, datetime, timedelta
from redis import Redis
from sqlalchemy.orm import Session

from ...errors import ActivityNotFound, ActivityNotPublished, BookingError, BusinessNotActive
from ...models import Activities
from ..booking_ledger import booked_by_slot
from ..template_store import resolve_activity_template, slot_capacity_for, template_slots
from .config import BookingConfig, get_booking_config
from .generator import from_utc_naive, slot_id, to_utc_naive, utcnow


def resolve_availability(
    db: Session,
    activity_id: int,
    target_date: date,
    party_size: int = 1,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Remaining capacity per slot for a party size.

    Past slots are returned with available=False so a full day can be shown.
    A slot starting exactly at `now` counts as started, as in create_booking.

    Returns:
        Dict for AvailabilityResponse.
    """
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()

    if party_size < 1:
        raise BookingError("partySize must be at least 1", code="INVALID_PARTY_SIZE")

    activity = db.get(Activities, activity_id)
    if not activity:
        raise ActivityNotFound("Activity not found")
    if activity.status != "published":
        raise ActivityNotPublished("Activity is not available for booking")
    if activity.business is None or activity.business.status != "active":
        raise BusinessNotActive("Business is not active")

    template = resolve_activity_template(db, activity)
    capacity = slot_capacity_for(activity, template)

    result = {
        "activity_id": activity.id,
        "date": target_date.isoformat(),
        "party_size": party_size,
        "slot_duration_minutes": template.slot_duration_minutes,
        "capacity": capacity,
        "slots": [],
    }

    today_local = from_utc_naive(now, config.tz).date()
    if target_date > today_local + timedelta(days=config.horizon_days):
        return result

    grid = template_slots(template, target_date, config, redis)
    if not grid:
        return result

    utc_grid = [to_utc_naive(s) for s in grid]
    booked = booked_by_slot(db, activity.id, utc_grid[0], utc_grid[-1])

    for local_start, utc_start in zip(grid, utc_grid):
        remaining = max(0, capacity - booked.get(utc_start, 0))
        in_past = utc_start <= now
        local = local_start.astimezone(config.tz)
        result["slots"].append({
            "slot_id": slot_id(activity.id, utc_start, config.tz),
            "slot_start": utc_start,
            "time": f"{local:%H:%M}",
            "available": not in_past and remaining >= party_size,
            "remaining_capacity": remaining,
            "capacity": capacity,
        })

    return result
