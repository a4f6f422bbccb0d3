# backend/booking_api/services/booking_manager.py
"""
Booking Transaction Manager.

create_booking:
  1. Preconditions (no writes): user exists, profile complete, slot in the future
  2. Reserve (one transaction): activity published, slot on the current grid,
     package + participants valid, conditional seat increment, booking insert
  3. Commit

Transient storage errors re-run step 2 from scratch (run_with_retries).
SlotFull and every other domain error roll back and propagate immediately.
"""

import copy
import logging
from datetime import datetime, time, timedelta
from typing import Optional

from redis import Redis
from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Session

from ..database import run_with_retries
from ..errors import (
    ActivityNotFound,
    ActivityNotPublished,
    BookingError,
    BookingNotCancellable,
    BookingNotFound,
    BusinessNotActive,
    BusinessNotFound,
    CancellationWindowClosed,
    NotOwner,
    ProfileIncomplete,
    SlotFull,
    SlotInPast,
    TemplateMismatch,
    UserNotFound,
)
from ..models import Activities, Bookings, Businesses, Users
from ..schemas.bookings import BookingCreate
from .booking_ledger import OCCUPYING_STATUSES, release_seats, reserve_seats, seats_taken
from .packages import calculate_price, check_participants, load_packages, select_package
from .slots.config import BookingConfig, get_booking_config
from .slots.generator import from_utc_naive, local_date_of, slot_id, to_utc_naive, utcnow
from .template_store import resolve_activity_template, slot_capacity_for, template_slots

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


# ── Create ───────────────────────────────────────────────────────────────


def create_booking(
    db: Session,
    user_id: int,
    data: BookingCreate,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
) -> Bookings:
    """
    Reserve seats on a slot and insert the booking atomically.

    Raises:
        UserNotFound, ProfileIncomplete, SlotInPast: before any write
        ActivityNotFound, ActivityNotPublished, BusinessNotActive, TemplateNotFound,
        TemplateMismatch, PackageNotFound, Min/MaxParticipants..., SlotFull:
        inside the transaction, after rollback
    """
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()

    user = db.get(Users, user_id)
    if not user:
        raise UserNotFound("User not found")
    if not (user.phone_number or "").strip():
        raise ProfileIncomplete(
            "Please complete your profile before booking",
            missingFields=["phoneNumber"],
            redirect="/complete-profile",
        )

    if data.participants_count < 1:
        raise BookingError("participantsCount must be at least 1", code="INVALID_PARTICIPANTS")

    slot_start = to_utc_naive(data.slot_start)
    if slot_start <= now:
        raise SlotInPast("Cannot book a slot that has already started")

    def _reserve(session: Session) -> Bookings:
        return _reserve_and_insert(session, user, data, slot_start, config, redis)

    try:
        booking = run_with_retries(db, _reserve, config.max_attempts, config.retry_backoff_ms)
    except BookingError:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info(
        f"Booking created: id={booking.id}, activity={booking.activity_id}, "
        f"slot={booking.slot_start.isoformat()}, participants={booking.participants_count}, "
        f"user={user_id}"
    )
    return booking


def _reserve_and_insert(
    db: Session,
    user: Users,
    data: BookingCreate,
    slot_start: datetime,
    config: BookingConfig,
    redis: Redis | None,
) -> Bookings:
    activity = db.get(Activities, data.activity_id)
    if not activity:
        raise ActivityNotFound("Activity not found")
    if activity.status != "published":
        raise ActivityNotPublished("Activity is not available for booking")
    if activity.business is None or activity.business.status != "active":
        raise BusinessNotActive("Business is not active")

    template = resolve_activity_template(db, activity)

    # Off-grid times (template edited since the client resolved) are rejected
    local_date = local_date_of(slot_start, config.tz)
    grid = {to_utc_naive(s) for s in template_slots(template, local_date, config, redis)}
    if slot_start not in grid:
        raise TemplateMismatch(
            "Selected time is not available anymore. Please choose another slot.",
            slotStart=from_utc_naive(slot_start, config.tz).isoformat(),
        )

    selection_data = data.selection_data or {}
    packages = load_packages(activity)
    package = select_package(packages, selection_data)
    check_participants(package, data.participants_count)

    capacity = slot_capacity_for(activity, template)
    key = slot_id(activity.id, slot_start, config.tz)

    if not reserve_seats(db, key, activity.id, slot_start, data.participants_count, capacity):
        available = max(0, capacity - seats_taken(db, key))
        db.rollback()
        logger.info(
            f"Booking rejected (SLOT_FULL): activity={activity.id}, slot={key}, "
            f"requested={data.participants_count}, available={available}"
        )
        raise SlotFull(
            f"Not enough seats left in this slot ({available} available)",
            availableSeats=available,
        )

    price = calculate_price(activity, package, data.participants_count)
    business = activity.business

    booking = Bookings(
        activity_id=activity.id,
        business_id=activity.business_id,
        user_id=user.id,
        slot_start=slot_start,
        duration_minutes=template.slot_duration_minutes,
        participants_count=data.participants_count,
        status="active",
        activity_snapshot=_activity_snapshot(activity),
        business_snapshot=_business_snapshot(business),
        selection_snapshot={
            "typeId": activity.type_id,
            "activityId": activity.id,
            "packageCode": package.code if package else None,
            "packageName": package.title if package else None,
            "durationMinutes": template.slot_duration_minutes,
            "participantsCount": data.participants_count,
            "data": copy.deepcopy(selection_data),
        },
        price_snapshot=price,
        payment_amount=float(price["total"]),
        payment_currency=price["currency"],
        created_at=utcnow(),
    )
    db.add(booking)
    db.commit()
    return booking


def _activity_snapshot(activity: Activities) -> dict:
    return {
        "id": activity.id,
        "title": activity.title,
        "description": activity.description,
        "city": activity.city,
        "address": activity.address,
        "thumbnailUrl": activity.thumbnail_url,
        "typeId": activity.type_id,
    }


def _business_snapshot(business: Businesses) -> dict:
    return {
        "id": business.id,
        "name": business.name,
        "contactPhone": business.contact_phone,
        "contactEmail": business.contact_email,
        "city": business.city,
        "address": business.address,
    }


# ── Cancel ───────────────────────────────────────────────────────────────


def cancel_booking(
    db: Session,
    user_id: int,
    booking_id: int,
    reason: Optional[str] = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> Bookings:
    """
    active → cancelled, releasing the seats in the same transaction.

    Policy: allowed while now < slot_start - cancellation_cutoff_minutes.
    Cancelling an already cancelled booking returns it unchanged.
    """
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()

    booking = db.get(Bookings, booking_id)
    if not booking:
        raise BookingNotFound("Booking not found")
    if booking.user_id != user_id:
        raise NotOwner("You can only cancel your own bookings")

    if booking.status == "cancelled":
        return booking
    if booking.status == "completed":
        raise BookingNotCancellable("Completed bookings cannot be cancelled")

    deadline = booking.slot_start - timedelta(minutes=config.cancellation_cutoff_minutes)
    if now >= deadline:
        raise CancellationWindowClosed(
            "This booking can no longer be cancelled",
            cutoffMinutes=config.cancellation_cutoff_minutes,
        )

    key = slot_id(booking.activity_id, booking.slot_start, config.tz)
    seats = booking.participants_count

    def _cancel(session: Session) -> bool:
        result = session.execute(
            update(Bookings)
            .where(Bookings.id == booking_id, Bookings.status == "active")
            .values(status="cancelled", cancel_reason=reason, cancelled_at=now)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount == 1
        if changed:
            release_seats(session, key, seats)
        session.commit()
        return changed

    changed = run_with_retries(db, _cancel, config.max_attempts, config.retry_backoff_ms)
    db.refresh(booking)

    if changed:
        logger.info(f"Booking cancelled: id={booking.id}, slot={key}, seats={seats}")
    elif booking.status == "completed":
        # Lost a race against the completion sweep
        raise BookingNotCancellable("Completed bookings cannot be cancelled")
    return booking


# ── Queries ──────────────────────────────────────────────────────────────


def get_booking(db: Session, user_id: int, booking_id: int) -> Bookings:
    """Readable by the consumer who booked it and by the owner of the business."""
    booking = db.get(Bookings, booking_id)
    if not booking:
        raise BookingNotFound("Booking not found")
    if booking.user_id == user_id:
        return booking

    business = db.get(Businesses, booking.business_id)
    if business is None or business.owner_user_id != user_id:
        raise NotOwner("You do not have access to this booking")
    return booking


def list_bookings(
    db: Session,
    user_id: int,
    kind: str = "upcoming",
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: Optional[str] = None,
    now: datetime | None = None,
) -> dict:
    """
    Consumer's bookings.

    upcoming: active, not started yet, soonest first
    past:     everything else, most recent first
    """
    now = to_utc_naive(now) if now else utcnow()
    query = db.query(Bookings).filter(Bookings.user_id == user_id)

    if kind == "upcoming":
        query = query.filter(Bookings.status == "active", Bookings.slot_start >= now)
        descending = False
    else:
        query = query.filter(or_(Bookings.status != "active", Bookings.slot_start < now))
        descending = True

    return _page(query, limit, cursor, descending)


def list_business_bookings(
    db: Session,
    user_id: int,
    business_id: int,
    status: Optional[str] = None,
    kind: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: Optional[str] = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> dict:
    """Bookings of a business (owner only), optionally filtered by status and upcoming/past/today."""
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()
    _owned_business(db, user_id, business_id)

    query = db.query(Bookings).filter(Bookings.business_id == business_id)
    if status:
        query = query.filter(Bookings.status == status)

    descending = True
    if kind == "upcoming":
        query = query.filter(Bookings.slot_start >= now)
        descending = False
    elif kind == "past":
        query = query.filter(Bookings.slot_start < now)
    elif kind == "today":
        day_start, day_end = _local_day_bounds(now, config)
        query = query.filter(Bookings.slot_start >= day_start, Bookings.slot_start < day_end)
        descending = False

    return _page(query, limit, cursor, descending)


def business_stats(
    db: Session,
    user_id: int,
    business_id: int,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> dict:
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()
    _owned_business(db, user_id, business_id)

    day_start, day_end = _local_day_bounds(now, config)
    base = db.query(Bookings).filter(Bookings.business_id == business_id)

    today_count = base.filter(
        Bookings.status.in_(OCCUPYING_STATUSES),
        Bookings.slot_start >= day_start,
        Bookings.slot_start < day_end,
    ).count()
    upcoming_count = base.filter(
        Bookings.status == "active",
        Bookings.slot_start >= now,
    ).count()
    revenue = (
        db.query(func.coalesce(func.sum(Bookings.payment_amount), 0))
        .filter(
            Bookings.business_id == business_id,
            Bookings.status.in_(OCCUPYING_STATUSES),
        )
        .scalar()
    )

    return {
        "today_count": today_count,
        "upcoming_count": upcoming_count,
        "total_revenue": f"{float(revenue or 0):.2f}",
    }


# ── Helpers ──────────────────────────────────────────────────────────────


def _owned_business(db: Session, user_id: int, business_id: int) -> Businesses:
    business = db.get(Businesses, business_id)
    if not business:
        raise BusinessNotFound("Business not found")
    if business.owner_user_id != user_id:
        raise NotOwner("You do not own this business")
    return business


def _local_day_bounds(now: datetime, config: BookingConfig) -> tuple[datetime, datetime]:
    """[start, end) of the business-local calendar day containing `now`, as naive UTC."""
    today = from_utc_naive(now, config.tz).date()
    start = datetime.combine(today, time(0), tzinfo=config.tz)
    end = datetime.combine(today + timedelta(days=1), time(0), tzinfo=config.tz)
    return to_utc_naive(start), to_utc_naive(end)


def encode_cursor(booking: Bookings) -> str:
    return f"{booking.slot_start.isoformat()}_{booking.id}"


def decode_cursor(cursor: str) -> tuple[datetime, int]:
    try:
        raw_start, raw_id = cursor.rsplit("_", 1)
        return datetime.fromisoformat(raw_start), int(raw_id)
    except ValueError:
        raise BookingError("Invalid cursor", code="INVALID_CURSOR")


def _page(query, limit: int, cursor: Optional[str], descending: bool) -> dict:
    """Keyset pagination over (slot_start, id)."""
    limit = max(1, min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))

    if cursor:
        after_start, after_id = decode_cursor(cursor)
        if descending:
            query = query.filter(or_(
                Bookings.slot_start < after_start,
                and_(Bookings.slot_start == after_start, Bookings.id < after_id),
            ))
        else:
            query = query.filter(or_(
                Bookings.slot_start > after_start,
                and_(Bookings.slot_start == after_start, Bookings.id > after_id),
            ))

    if descending:
        query = query.order_by(Bookings.slot_start.desc(), Bookings.id.desc())
    else:
        query = query.order_by(Bookings.slot_start.asc(), Bookings.id.asc())

    rows = query.limit(limit + 1).all()
    items = rows[:limit]
    next_cursor = encode_cursor(items[-1]) if len(rows) > limit else None
    return {"items": items, "next_cursor": next_cursor}
