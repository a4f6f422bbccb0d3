# backend/booking_api/services/slots/generator.py
"""
Slot generation from an availability template.

Pure functions: (template, date) → ordered slot starts. No I/O.

Contains:
✓ weekly_schedule windows for the weekday
✓ template exceptions (closed date ranges)
✓ slot_duration_minutes grid; a trailing partial slot is dropped

Does NOT contain:
✗ Bookings / remaining capacity (see availability.py)
✗ "Now" filtering (past slots are still generated)
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .config import time_str_to_minutes

DAY_NAMES = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


def generate_slots(template, target_date: date, tz: ZoneInfo) -> list[datetime]:
    """
    Enumerate slot starts for `target_date`.

    Args:
        template: object with slot_duration_minutes, weekly_schedule and
                  (optionally) exceptions carrying start_date/end_date
        target_date: Calendar date in the template's local zone
        tz: Zone the opening hours are expressed in

    Returns:
        Timezone-aware local datetimes, strictly ascending. Empty list = closed.
    """
    duration = template.slot_duration_minutes
    if not duration or duration <= 0:
        return []

    if is_closed_on(template, target_date):
        return []

    windows = get_day_windows(template.weekly_schedule or {}, target_date)
    midnight = datetime.combine(target_date, time(0), tzinfo=tz)

    slots: list[datetime] = []
    for open_min, close_min in windows:
        t = open_min
        while t + duration <= close_min:
            start = midnight + timedelta(minutes=t)
            # Wall times skipped by a DST jump map onto an existing instant
            if _exists_locally(start, tz):
                slots.append(start)
            t += duration

    return slots


def _exists_locally(local: datetime, tz: ZoneInfo) -> bool:
    roundtrip = local.astimezone(timezone.utc).astimezone(tz)
    return roundtrip.replace(tzinfo=None) == local.replace(tzinfo=None)


def is_closed_on(template, target_date: date) -> bool:
    """True if any template exception covers target_date."""
    for exc in getattr(template, "exceptions", None) or []:
        if exc.start_date <= target_date <= exc.end_date:
            return True
    return False


def get_day_windows(schedule: dict, target_date: date) -> list[tuple[int, int]]:
    """
    Extract opening windows for target_date as (open_min, close_min), sorted.

    Schedule formats:
      numeric weekday keys: {"0": [["09:00", "12:00"]], ...}   0 = Monday
      named keys:           {"mon": [["09:00", "12:00"]], "tue": {"start": "09:00", "end": "18:00"}}
    """
    intervals = _raw_day_intervals(schedule, target_date.weekday())

    windows = []
    for interval in intervals:
        if len(interval) != 2:
            continue
        windows.append(
            (time_str_to_minutes(interval[0]), time_str_to_minutes(interval[1]))
        )
    windows.sort()
    return windows


def _raw_day_intervals(schedule: dict, weekday: int) -> list:
    weekday_str = str(weekday)
    if weekday_str in schedule:
        intervals = schedule[weekday_str]
        return intervals if isinstance(intervals, list) else []

    day_name = DAY_NAMES[weekday]
    if day_name not in schedule:
        return []

    day_data = schedule[day_name]
    if day_data is None:
        return []
    if isinstance(day_data, dict):
        start = day_data.get("start")
        end = day_data.get("end")
        return [[start, end]] if start and end else []
    if isinstance(day_data, list):
        return day_data
    return []


# ── Time helpers ─────────────────────────────────────────────────────────


def utcnow() -> datetime:
    """Current time as naive UTC (storage form)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize to naive UTC (storage form). Naive input is taken as UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_utc_naive(dt: datetime, tz: ZoneInfo) -> datetime:
    """Naive UTC (storage form) → aware datetime in tz."""
    return dt.replace(tzinfo=timezone.utc).astimezone(tz)


def local_date_of(dt: datetime, tz: ZoneInfo) -> date:
    """Calendar date of a slot start in business local time."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz).date()


def slot_id(activity_id: int, slot_start: datetime, tz: ZoneInfo) -> str:
    """Stable slot key: "{activity_id}_{YYYY-MM-DD}_{HHMM}" in business local time."""
    if slot_start.tzinfo is None:
        slot_start = slot_start.replace(tzinfo=timezone.utc)
    local = slot_start.astimezone(tz)
    return f"{activity_id}_{local:%Y-%m-%d}_{local:%H%M}"
