# backend/booking_api/services/booking_ledger.py
"""
Booking ledger: occupancy reads and the capacity guard.

Reads aggregate participants_count over non-cancelled bookings on every call;
nothing is cached.

Writes go through a per-slot counter row (slot_capacity) updated with a
single conditional statement:

    UPDATE slot_capacity
       SET booked_seats = booked_seats + :n
     WHERE id = :slot AND booked_seats + :n <= :capacity

The database serializes concurrent updates of the same row, so two requests
racing for the last seats cannot both pass the check. Different slots are
different rows and do not contend (on SQLite the whole database is one
write lock; requests still serialize correctly, just not per key).
"""

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..models import Bookings, SlotCapacity

logger = logging.getLogger(__name__)

# Statuses that hold seats. Completed bookings keep their seats for history.
OCCUPYING_STATUSES = ("active", "completed")


def booked_by_slot(
    db: Session,
    activity_id: int,
    first_slot: datetime,
    last_slot: datetime,
) -> dict[datetime, int]:
    """
    Booked participants per slot_start in [first_slot, last_slot], one query.

    Args:
        first_slot / last_slot: naive UTC bounds (inclusive)

    Returns:
        {slot_start (naive UTC): participants}
    """
    rows = (
        db.query(Bookings.slot_start, func.sum(Bookings.participants_count))
        .filter(
            Bookings.activity_id == activity_id,
            Bookings.slot_start >= first_slot,
            Bookings.slot_start <= last_slot,
            Bookings.status.in_(OCCUPYING_STATUSES),
        )
        .group_by(Bookings.slot_start)
        .all()
    )
    return {slot_start: int(total or 0) for slot_start, total in rows}


def booked_for_slot(db: Session, activity_id: int, slot_start: datetime) -> int:
    total = db.scalar(
        select(func.coalesce(func.sum(Bookings.participants_count), 0)).where(
            Bookings.activity_id == activity_id,
            Bookings.slot_start == slot_start,
            Bookings.status.in_(OCCUPYING_STATUSES),
        )
    )
    return int(total or 0)


# ── Capacity guard ───────────────────────────────────────────────────────


def reserve_seats(
    db: Session,
    slot_key: str,
    activity_id: int,
    slot_start: datetime,
    seats: int,
    capacity: int,
) -> bool:
    """
    Atomically add `seats` to the slot counter if it stays within `capacity`.

    Must run inside the caller's transaction; the booking row is inserted in
    the same transaction. Returns False (nothing written) when the slot is full.
    """
    _ensure_counter(db, slot_key, activity_id, slot_start)

    result = db.execute(
        update(SlotCapacity)
        .where(
            SlotCapacity.id == slot_key,
            SlotCapacity.booked_seats + seats <= capacity,
        )
        .values(booked_seats=SlotCapacity.booked_seats + seats)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def seats_taken(db: Session, slot_key: str) -> int:
    """Current counter value for a slot (0 if never reserved)."""
    value = db.scalar(select(SlotCapacity.booked_seats).where(SlotCapacity.id == slot_key))
    return int(value or 0)


def release_seats(db: Session, slot_key: str, seats: int) -> None:
    """Give seats back after a cancellation (same transaction as the status change)."""
    result = db.execute(
        update(SlotCapacity)
        .where(
            SlotCapacity.id == slot_key,
            SlotCapacity.booked_seats >= seats,
        )
        .values(booked_seats=SlotCapacity.booked_seats - seats)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(f"Slot counter {slot_key} missing or below {seats} on release")


def _ensure_counter(
    db: Session,
    slot_key: str,
    activity_id: int,
    slot_start: datetime,
) -> None:
    """
    Lazily create the counter row, seeded from the ledger.

    INSERT ... ON CONFLICT DO NOTHING: when two requests initialize the
    same slot at once, one insert wins and the other is a no-op.
    """
    values = {
        "id": slot_key,
        "activity_id": activity_id,
        "slot_start": slot_start,
        "booked_seats": booked_for_slot(db, activity_id, slot_start),
    }

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        if db.get(SlotCapacity, slot_key) is None:
            db.add(SlotCapacity(**values))
            db.flush()
        return

    db.execute(insert(SlotCapacity).values(**values).on_conflict_do_nothing(index_elements=["id"]))
