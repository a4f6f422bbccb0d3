from datetime import datetime, timedelta

import pytest

from booking_api.errors import ActivityNotFound, ActivityNotPublished, BusinessNotActive, TemplateNotFound
from booking_api.models import Bookings
from booking_api.services.booking_manager import cancel_booking
from booking_api.services.slots.availability import resolve_availability
from booking_api.services.slots.config import BookingConfig

from conftest import DAY, NOW, UTC_CONFIG, book


def resolve(db, activity, party_size=1, day=DAY, now=NOW, config=UTC_CONFIG):
    return resolve_availability(db, activity.id, day, party_size=party_size, config=config, now=now)


def by_time(result):
    return {slot["time"]: slot for slot in result["slots"]}


def test_empty_day_lists_every_slot_with_full_capacity(db_session, factory):
    _, _, _, activity = factory.setup(capacity=4)

    result = resolve(db_session, activity)

    assert [s["time"] for s in result["slots"]] == ["09:00", "10:00", "11:00"]
    assert all(s["available"] and s["remaining_capacity"] == 4 for s in result["slots"])
    assert result["slots"][0]["slot_start"] == datetime(2030, 6, 3, 9, 0)
    assert result["slots"][0]["slot_id"] == f"{activity.id}_2030-06-03_0900"


def test_party_larger_than_remaining_is_unavailable_until_cancelled(db_session, factory):
    _, _, _, activity = factory.setup(capacity=4)
    consumer = factory.user()
    booking = book(db_session, consumer, activity, hour=10, participants=3)

    slot = by_time(resolve(db_session, activity, party_size=2))["10:00"]
    assert slot["available"] is False
    assert slot["remaining_capacity"] == 1

    cancel_booking(db_session, consumer.id, booking.id, config=UTC_CONFIG, now=NOW)

    slot = by_time(resolve(db_session, activity, party_size=2))["10:00"]
    assert slot["available"] is True
    assert slot["remaining_capacity"] == 4


def test_remaining_capacity_sums_every_booking_of_the_slot(db_session, factory):
    _, _, _, activity = factory.setup(capacity=10)
    a, b, c = factory.user(), factory.user(), factory.user()
    book(db_session, a, activity, hour=9, participants=2)
    book(db_session, b, activity, hour=9, participants=3)
    cancelled = book(db_session, c, activity, hour=9, participants=4)
    cancel_booking(db_session, c.id, cancelled.id, config=UTC_CONFIG, now=NOW)
    book(db_session, c, activity, hour=11, participants=1)

    slots = by_time(resolve(db_session, activity))

    assert slots["09:00"]["remaining_capacity"] == 5
    assert slots["10:00"]["remaining_capacity"] == 10
    assert slots["11:00"]["remaining_capacity"] == 9


def test_remaining_capacity_never_negative(db_session, factory):
    owner, business, template, activity = factory.setup(capacity=4)
    consumer = factory.user()
    book(db_session, consumer, activity, hour=9, participants=4)

    # Capacity lowered after the fact
    template.capacity_per_slot = 2
    db_session.commit()

    slot = by_time(resolve(db_session, activity))["09:00"]
    assert slot["remaining_capacity"] == 0
    assert slot["available"] is False


def test_past_slots_are_returned_but_unavailable(db_session, factory):
    _, _, _, activity = factory.setup()
    now = datetime(2030, 6, 3, 10, 30)

    slots = resolve(db_session, activity, now=now)["slots"]

    assert [(s["time"], s["available"]) for s in slots] == [
        ("09:00", False),
        ("10:00", False),
        ("11:00", True),
    ]
    assert all(s["remaining_capacity"] == 4 for s in slots)


def test_slot_starting_exactly_now_is_unavailable(db_session, factory):
    _, _, _, activity = factory.setup()

    slots = by_time(resolve(db_session, activity, now=datetime(2030, 6, 3, 10, 0)))

    assert slots["10:00"]["available"] is False
    assert slots["11:00"]["available"] is True


def test_capacity_override_on_activity(db_session, factory):
    _, _, _, activity = factory.setup(capacity=4, capacity_override=12)
    result = resolve(db_session, activity, party_size=10)
    assert result["capacity"] == 12
    assert all(s["available"] for s in result["slots"])


def test_date_beyond_horizon_is_empty(db_session, factory):
    _, _, _, activity = factory.setup()
    config = BookingConfig(timezone="UTC", horizon_days=1)
    assert resolve(db_session, activity, config=config)["slots"] == []


def test_closed_day_is_empty(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    template = factory.template(business, exceptions=[(DAY, DAY)])
    activity = factory.activity(business, template)

    assert resolve(db_session, activity)["slots"] == []
    assert len(resolve(db_session, activity, day=DAY + timedelta(days=1))["slots"]) == 3


def test_unpublished_activity(db_session, factory):
    _, _, _, activity = factory.setup(status="draft")
    with pytest.raises(ActivityNotPublished):
        resolve(db_session, activity)


def test_inactive_business(db_session, factory):
    _, business, _, activity = factory.setup()
    business.status = "inactive"
    db_session.commit()

    with pytest.raises(BusinessNotActive):
        resolve(db_session, activity)


def test_unknown_activity(db_session):
    with pytest.raises(ActivityNotFound):
        resolve_availability(db_session, 999, DAY, config=UTC_CONFIG, now=NOW)


def test_no_active_template_for_duration(db_session, factory):
    business = factory.business()
    factory.template(business, duration=30)
    activity = factory.activity(business, duration=60)

    with pytest.raises(TemplateNotFound):
        resolve(db_session, activity)


def test_resolution_is_read_only(db_session, factory):
    _, _, _, activity = factory.setup()
    consumer = factory.user()
    book(db_session, consumer, activity, hour=9)

    first = resolve(db_session, activity)
    second = resolve(db_session, activity)

    assert first == second
    assert db_session.query(Bookings).count() == 1
