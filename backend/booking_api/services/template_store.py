# backend/booking_api/services/template_store.py
"""
Template Store: availability templates per business.

The resolver and the booking manager only read from here
(get_active_template / resolve_activity_template / template_slots).
Owners create and edit templates through the remaining functions.

Invariant: at most one `active` template per (business_id, slot_duration_minutes).
"""

import logging
from datetime import date
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ..errors import (
    BusinessNotFound,
    CannotDeactivateLinkedPublished,
    InvalidTemplate,
    NotFound,
    NotOwner,
    TemplateNotFound,
)
from ..models import Activities, AvailabilityTemplates, Businesses, TemplateExceptions
from ..schemas.availability_templates import TemplateCreate, TemplateExceptionIn, TemplateUpdate
from .slots.config import BookingConfig, minutes_to_time_str, time_str_to_minutes
from .slots.generator import DAY_NAMES, generate_slots, utcnow
from .slots.invalidator import invalidate_template_cache
from .slots.redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


# ── Read side (resolver / booking manager) ───────────────────────────────


def get_active_template(
    db: Session,
    business_id: int,
    slot_duration_minutes: int,
) -> Optional[AvailabilityTemplates]:
    """The single active template for (business, duration), or None."""
    return (
        db.query(AvailabilityTemplates)
        .filter(
            AvailabilityTemplates.business_id == business_id,
            AvailabilityTemplates.slot_duration_minutes == slot_duration_minutes,
            AvailabilityTemplates.status == "active",
        )
        .order_by(AvailabilityTemplates.updated_at.desc(), AvailabilityTemplates.id.desc())
        .first()
    )


def required_duration(activity: Activities) -> Optional[int]:
    """Slot duration an activity needs: its own, else its linked template's."""
    if activity.duration_minutes:
        return activity.duration_minutes
    if activity.availability_template is not None:
        return activity.availability_template.slot_duration_minutes
    return None


def resolve_activity_template(db: Session, activity: Activities) -> AvailabilityTemplates:
    """Active template for the activity's required duration, or TemplateNotFound."""
    duration = required_duration(activity)
    if not duration:
        raise TemplateNotFound("No availability configured for this activity")

    template = get_active_template(db, activity.business_id, duration)
    if template is None:
        raise TemplateNotFound(
            f"No active availability template with {duration}-minute slots",
            slotDurationMinutes=duration,
        )
    return template


def slot_capacity_for(activity: Activities, template: AvailabilityTemplates) -> int:
    """Seats per slot: the activity's override, else the template's capacity."""
    return activity.capacity_override or template.capacity_per_slot


def template_slots(
    template: AvailabilityTemplates,
    target_date: date,
    config: BookingConfig,
    redis: Redis | None = None,
) -> list:
    """Generated grid for a date, read through the Redis cache when available."""
    if redis is None:
        return generate_slots(template, target_date, config.tz)

    store = SlotsRedisStore(redis, config)
    try:
        cached = store.get_day_slots(template.id, template.revision, target_date)
        if cached is not None:
            return cached
    except RedisError as e:
        logger.warning(f"Slot cache read failed for template {template.id}: {e}")
        return generate_slots(template, target_date, config.tz)

    slots = generate_slots(template, target_date, config.tz)
    try:
        store.store_day_slots(template.id, template.revision, target_date, slots)
    except RedisError as e:
        logger.warning(f"Slot cache write failed for template {template.id}: {e}")
    return slots


# ── Validation ───────────────────────────────────────────────────────────


def normalize_schedule(raw: dict) -> dict[str, list[list[str]]]:
    """
    Validate a weekly schedule and normalize it to numeric weekday keys.

    Accepts "0".."6" (0 = Monday) or "mon".."sun" keys; a day value may be
    None, {"start", "end"} or a list of [open, close] pairs.
    Windows must satisfy open < close and must not overlap within a day.
    """
    normalized: dict[str, list[list[str]]] = {}

    for key, value in raw.items():
        weekday = _weekday_index(key)
        if str(weekday) in normalized:
            raise InvalidTemplate(f"Weekday {key!r} is defined twice", field="weeklySchedule")

        if value is None:
            intervals = []
        elif isinstance(value, dict):
            intervals = [[value.get("start"), value.get("end")]]
        elif isinstance(value, list):
            intervals = value
        else:
            raise InvalidTemplate(f"Invalid windows for {key!r}", field="weeklySchedule")

        windows = []
        for interval in intervals:
            if not isinstance(interval, (list, tuple)) or len(interval) != 2:
                raise InvalidTemplate(
                    f"Window for {key!r} must be [open, close]", field="weeklySchedule"
                )
            try:
                open_min = time_str_to_minutes(str(interval[0]))
                close_min = time_str_to_minutes(str(interval[1]))
            except (TypeError, ValueError):
                raise InvalidTemplate(
                    f"Invalid time in window {interval!r}", field="weeklySchedule"
                )
            if open_min >= close_min:
                raise InvalidTemplate(
                    f"Window {interval!r}: open time must be before close time",
                    field="weeklySchedule",
                )
            windows.append((open_min, close_min))

        windows.sort()
        for (_, prev_close), (next_open, _) in zip(windows, windows[1:]):
            if next_open < prev_close:
                raise InvalidTemplate(
                    f"Overlapping windows on {key!r}", field="weeklySchedule"
                )

        normalized[str(weekday)] = [
            [minutes_to_time_str(o), minutes_to_time_str(c)] for o, c in windows
        ]

    if not any(normalized.values()):
        raise InvalidTemplate(
            "weeklySchedule must contain at least one opening window", field="weeklySchedule"
        )

    return dict(sorted(normalized.items()))


def _weekday_index(key: str) -> int:
    k = str(key).strip().lower()
    if k.isdigit() and 0 <= int(k) <= 6:
        return int(k)
    if k[:3] in DAY_NAMES:
        return DAY_NAMES.index(k[:3])
    raise InvalidTemplate(
        f"Unknown weekday {key!r}; use 0..6 (Mon..Sun) or mon..sun", field="weeklySchedule"
    )


def _build_exceptions(items: list[TemplateExceptionIn]) -> list[TemplateExceptions]:
    result = []
    for item in items:
        if item.start_date > item.end_date:
            raise InvalidTemplate(
                "Exception startDate must be before or equal to endDate", field="exceptions"
            )
        result.append(
            TemplateExceptions(
                start_date=item.start_date,
                end_date=item.end_date,
                reason=item.reason,
            )
        )
    return result


# ── Ownership ────────────────────────────────────────────────────────────


def _owned_business(db: Session, user_id: int, business_id: int) -> Businesses:
    business = db.get(Businesses, business_id)
    if not business:
        raise BusinessNotFound("Business not found")
    if business.owner_user_id != user_id:
        raise NotOwner("You do not own this business")
    return business


def _owned_template(db: Session, user_id: int, template_id: int) -> AvailabilityTemplates:
    template = db.get(AvailabilityTemplates, template_id)
    if not template:
        raise NotFound("Template not found", code="TEMPLATE_NOT_FOUND")
    if template.business.owner_user_id != user_id:
        raise NotOwner("You do not own this template")
    return template


def _deactivate_siblings(db: Session, template: AvailabilityTemplates) -> None:
    """Keep a single active template per (business, duration)."""
    siblings = (
        db.query(AvailabilityTemplates)
        .filter(
            AvailabilityTemplates.business_id == template.business_id,
            AvailabilityTemplates.slot_duration_minutes == template.slot_duration_minutes,
            AvailabilityTemplates.status == "active",
            AvailabilityTemplates.id != template.id,
        )
        .all()
    )
    for sibling in siblings:
        sibling.status = "inactive"
        sibling.updated_at = utcnow()
        logger.info(
            f"Template {sibling.id} deactivated: superseded by template {template.id}"
        )


# ── Owner operations ─────────────────────────────────────────────────────


def create_template(
    db: Session,
    user_id: int,
    business_id: int,
    data: TemplateCreate,
) -> AvailabilityTemplates:
    _owned_business(db, user_id, business_id)

    now = utcnow()
    template = AvailabilityTemplates(
        business_id=business_id,
        name=data.name,
        status=data.status,
        slot_duration_minutes=data.slot_duration_minutes,
        capacity_per_slot=data.capacity_per_slot,
        weekly_schedule=normalize_schedule(data.weekly_schedule),
        revision=1,
        created_at=now,
        updated_at=now,
        exceptions=_build_exceptions(data.exceptions),
    )
    db.add(template)
    db.flush()

    if template.status == "active":
        _deactivate_siblings(db, template)

    db.commit()
    db.refresh(template)
    logger.info(
        f"Template created: id={template.id}, business={business_id}, "
        f"duration={template.slot_duration_minutes}, status={template.status}"
    )
    return template


def get_template(db: Session, user_id: int, template_id: int) -> AvailabilityTemplates:
    return _owned_template(db, user_id, template_id)


def list_templates(db: Session, user_id: int, business_id: int) -> list[AvailabilityTemplates]:
    _owned_business(db, user_id, business_id)
    return (
        db.query(AvailabilityTemplates)
        .filter(AvailabilityTemplates.business_id == business_id)
        .order_by(AvailabilityTemplates.updated_at.desc(), AvailabilityTemplates.id.desc())
        .all()
    )


def update_template(
    db: Session,
    user_id: int,
    template_id: int,
    data: TemplateUpdate,
    redis: Redis | None = None,
) -> AvailabilityTemplates:
    template = _owned_template(db, user_id, template_id)

    if data.name is not None:
        template.name = data.name
    if data.weekly_schedule is not None:
        template.weekly_schedule = normalize_schedule(data.weekly_schedule)
    if data.slot_duration_minutes is not None:
        template.slot_duration_minutes = data.slot_duration_minutes
    if data.capacity_per_slot is not None:
        template.capacity_per_slot = data.capacity_per_slot
    if data.exceptions is not None:
        template.exceptions = _build_exceptions(data.exceptions)

    template.revision = (template.revision or 1) + 1
    template.updated_at = utcnow()

    if template.status == "active":
        _deactivate_siblings(db, template)

    db.commit()
    db.refresh(template)

    invalidate_template_cache(redis, template.id, keep_revision=template.revision)
    logger.info(f"Template updated: id={template.id}, revision={template.revision}")
    return template


def activate_template(db: Session, user_id: int, template_id: int) -> AvailabilityTemplates:
    template = _owned_template(db, user_id, template_id)
    if template.status != "active":
        template.status = "active"
        template.updated_at = utcnow()
        _deactivate_siblings(db, template)
        db.commit()
        db.refresh(template)
        logger.info(f"Template activated: id={template.id}")
    return template


def deactivate_template(
    db: Session,
    user_id: int,
    template_id: int,
    redis: Redis | None = None,
) -> AvailabilityTemplates:
    template = _owned_template(db, user_id, template_id)

    linked = (
        db.query(Activities)
        .filter(
            Activities.availability_template_id == template_id,
            Activities.status == "published",
        )
        .all()
    )
    if linked:
        raise CannotDeactivateLinkedPublished(
            f"Cannot deactivate template linked to {len(linked)} published activity(ies). "
            "Deactivate or unlink those activities first.",
            linkedActivities=[{"id": a.id, "title": a.title} for a in linked],
        )

    template.status = "inactive"
    template.updated_at = utcnow()
    db.commit()
    db.refresh(template)

    invalidate_template_cache(redis, template.id)
    logger.info(f"Template deactivated: id={template.id}")
    return template
