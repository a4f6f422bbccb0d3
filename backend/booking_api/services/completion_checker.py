"""
Booking completion checker.

Periodically marks bookings whose slot has ended
(slot_start + duration_minutes <= now) as completed.

Runs as an asyncio task in backend lifespan.
Uses the synchronous DB session (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..models import Bookings
from .slots.generator import to_utc_naive, utcnow

logger = logging.getLogger(__name__)


async def completion_checker_loop(interval: int | None = None) -> None:
    """
    Periodic loop that completes elapsed active bookings.

    Errors of a single pass are logged and the loop keeps going.
    """
    interval = interval or settings.completion_check_interval
    logger.info("completion_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_check_completed_bookings)
            except asyncio.CancelledError:
                logger.info("completion_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("completion_checker_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass


def _check_completed_bookings() -> None:
    """One pass (synchronous)."""
    db = SessionLocal()
    try:
        complete_elapsed_bookings(db)
    finally:
        db.close()


def complete_elapsed_bookings(db: Session, now: datetime | None = None) -> int:
    """
    active → completed for every booking whose slot has ended.

    Seats stay taken: completed bookings remain part of the slot's history.

    Returns:
        Number of bookings completed.
    """
    now = to_utc_naive(now) if now else utcnow()

    # Coarse filter in SQL; the end time depends on each row's duration
    candidates = (
        db.query(Bookings.id, Bookings.slot_start, Bookings.duration_minutes)
        .filter(Bookings.status == "active", Bookings.slot_start <= now)
        .all()
    )
    elapsed = [
        booking_id
        for booking_id, slot_start, duration in candidates
        if slot_start + timedelta(minutes=duration or 0) <= now
    ]
    if not elapsed:
        return 0

    result = db.execute(
        update(Bookings)
        .where(Bookings.id.in_(elapsed), Bookings.status == "active")
        .values(status="completed", completed_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    completed = result.rowcount or 0
    logger.info(f"Completed {completed} booking(s) ended before {now.isoformat()}")
    return completed
