from datetime import date
from unittest.mock import MagicMock

import pytest

from booking_api.errors import (
    CannotDeactivateLinkedPublished,
    InvalidTemplate,
    NotOwner,
    TemplateNotFound,
)
from booking_api.models import AvailabilityTemplates
from booking_api.schemas.availability_templates import TemplateCreate, TemplateExceptionIn, TemplateUpdate
from booking_api.services import template_store
from booking_api.services.template_store import normalize_schedule


def test_normalize_schedule_maps_named_days_to_weekday_numbers():
    result = normalize_schedule({
        "mon": [["14:00", "18:00"], ["09:00", "12:00"]],
        "sun": {"start": "10:00", "end": "16:00"},
        "wed": None,
    })
    assert result == {
        "0": [["09:00", "12:00"], ["14:00", "18:00"]],
        "2": [],
        "6": [["10:00", "16:00"]],
    }


@pytest.mark.parametrize(
    "schedule",
    [
        {"0": [["12:00", "09:00"]]},
        {"0": [["09:00", "09:00"]]},
        {"0": [["09:00", "12:00"], ["11:00", "13:00"]]},
        {"0": [["9am", "12:00"]]},
        {"0": [["09:00"]]},
        {"funday": [["09:00", "12:00"]]},
        {"0": [], "1": None},
        {"0": [["09:00", "12:00"]], "mon": [["13:00", "14:00"]]},
    ],
)
def test_normalize_schedule_rejects_invalid_windows(schedule):
    with pytest.raises(InvalidTemplate):
        normalize_schedule(schedule)


def test_adjacent_windows_are_allowed():
    assert normalize_schedule({"0": [["09:00", "12:00"], ["12:00", "14:00"]]}) == {
        "0": [["09:00", "12:00"], ["12:00", "14:00"]]
    }


def _create(db, owner, business, duration=60, status="active", **fields):
    data = TemplateCreate(
        name=fields.pop("name", "Weekdays"),
        weekly_schedule=fields.pop("weekly_schedule", {"mon": [["09:00", "17:00"]]}),
        slot_duration_minutes=duration,
        capacity_per_slot=fields.pop("capacity_per_slot", 6),
        status=status,
        **fields,
    )
    return template_store.create_template(db, owner.id, business.id, data)


def test_create_template_keeps_one_active_per_duration(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)

    first = _create(db_session, owner, business, duration=60)
    other_duration = _create(db_session, owner, business, duration=30)
    second = _create(db_session, owner, business, duration=60)

    db_session.refresh(first)
    db_session.refresh(other_duration)
    assert first.status == "inactive"
    assert other_duration.status == "active"
    assert second.status == "active"
    assert template_store.get_active_template(db_session, business.id, 60).id == second.id


def test_draft_template_does_not_replace_active(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    active = _create(db_session, owner, business)
    _create(db_session, owner, business, status="draft")

    assert template_store.get_active_template(db_session, business.id, 60).id == active.id


def test_activate_switches_the_active_template(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    active = _create(db_session, owner, business)
    draft = _create(db_session, owner, business, status="draft")

    template_store.activate_template(db_session, owner.id, draft.id)

    db_session.refresh(active)
    assert active.status == "inactive"
    assert template_store.get_active_template(db_session, business.id, 60).id == draft.id


def test_create_template_requires_business_owner(db_session, factory):
    business = factory.business()
    stranger = factory.user()
    with pytest.raises(NotOwner):
        _create(db_session, stranger, business)


def test_exception_range_must_be_ordered(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    with pytest.raises(InvalidTemplate):
        _create(
            db_session,
            owner,
            business,
            exceptions=[TemplateExceptionIn(start_date=date(2030, 6, 5), end_date=date(2030, 6, 1))],
        )


def test_update_bumps_revision_and_drops_old_cached_grids(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    template = _create(db_session, owner, business)
    assert template.revision == 1

    redis = MagicMock()
    redis.scan_iter.return_value = [
        f"slots:grid:{template.id}:1:2030-06-03".encode(),
        f"slots:grid:{template.id}:2:2030-06-03".encode(),
    ]

    updated = template_store.update_template(
        db_session,
        owner.id,
        template.id,
        TemplateUpdate(weekly_schedule={"tue": [["10:00", "12:00"]]}, capacity_per_slot=8),
        redis=redis,
    )

    assert updated.revision == 2
    assert updated.capacity_per_slot == 8
    assert updated.weekly_schedule == {"1": [["10:00", "12:00"]]}
    redis.delete.assert_called_once_with(f"slots:grid:{template.id}:1:2030-06-03")


def test_update_replaces_exceptions(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    template = _create(
        db_session,
        owner,
        business,
        exceptions=[TemplateExceptionIn(start_date=date(2030, 1, 1), end_date=date(2030, 1, 1))],
    )

    updated = template_store.update_template(
        db_session,
        owner.id,
        template.id,
        TemplateUpdate(exceptions=[
            TemplateExceptionIn(start_date=date(2030, 12, 24), end_date=date(2030, 12, 26), reason="Holidays")
        ]),
    )

    assert [(e.start_date, e.end_date, e.reason) for e in updated.exceptions] == [
        (date(2030, 12, 24), date(2030, 12, 26), "Holidays")
    ]


def test_cannot_deactivate_template_of_published_activity(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    template = _create(db_session, owner, business)
    factory.activity(business, template, status="published")

    with pytest.raises(CannotDeactivateLinkedPublished) as exc_info:
        template_store.deactivate_template(db_session, owner.id, template.id)
    assert exc_info.value.extra["linkedActivities"][0]["title"] == "Karting"


def test_deactivate_unlinked_template(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    template = _create(db_session, owner, business)
    factory.activity(business, template, status="draft")

    result = template_store.deactivate_template(db_session, owner.id, template.id)

    assert result.status == "inactive"
    assert template_store.get_active_template(db_session, business.id, 60) is None


def test_resolve_activity_template_requires_active_template_of_same_duration(db_session, factory):
    business = factory.business()
    factory.template(business, duration=30)
    activity = factory.activity(business, duration=60)

    with pytest.raises(TemplateNotFound) as exc_info:
        template_store.resolve_activity_template(db_session, activity)
    assert exc_info.value.extra == {"slotDurationMinutes": 60}


def test_list_templates_for_owner(db_session, factory):
    owner = factory.user()
    business = factory.business(owner)
    _create(db_session, owner, business, duration=60)
    _create(db_session, owner, business, duration=30)

    templates = template_store.list_templates(db_session, owner.id, business.id)

    assert {t.slot_duration_minutes for t in templates} == {30, 60}
    assert all(isinstance(t, AvailabilityTemplates) for t in templates)
