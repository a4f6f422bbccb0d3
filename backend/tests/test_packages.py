import pytest
from pydantic import ValidationError

from booking_api.errors import (
    InvalidPackages,
    MaxParticipantsExceeded,
    MinParticipantsNotMet,
    NotOwner,
    PackageNotFound,
)
from booking_api.schemas.activities import FixedPackage, PackagesUpdate, PerPersonPackage
from booking_api.services.packages import (
    calculate_price,
    check_participants,
    load_packages,
    select_package,
    set_activity_packages,
    validate_packages,
)

RACE = {"code": "mini-race", "title": "Mini Race", "base_price": 25, "is_default": True}
KIDS = {"code": "kids", "title": "Kids Race", "base_price": 20, "min_participants": 2, "max_participants": 6}
PRIVATE = {"code": "private", "title": "Private hour", "base_price": 450, "pricing_type": "fixed"}


def parse(*items):
    return PackagesUpdate(packages=list(items)).packages


def test_pricing_type_defaults_to_per_person():
    race, private = parse(RACE, PRIVATE)
    assert isinstance(race, PerPersonPackage)
    assert isinstance(private, FixedPackage)


def test_unknown_pricing_type_is_rejected():
    with pytest.raises(ValidationError):
        parse({**RACE, "pricing_type": "per_minute"})


def test_extra_package_fields_are_kept():
    (pkg,) = parse({**RACE, "track_type": "indoor", "age_min": 8})
    assert pkg.model_dump()["track_type"] == "indoor"


@pytest.mark.parametrize(
    "packages, code",
    [
        ([RACE, {**KIDS, "code": "mini-race"}], "PACKAGE_CODE_DUPLICATE"),
        ([RACE, {**KIDS, "is_default": True}], "MULTIPLE_DEFAULT_PACKAGES"),
        ([{**KIDS, "min_participants": 8}], "INVALID_PARTICIPANT_RANGE"),
        ([{**RACE, "code": "  "}], "PACKAGE_CODE_REQUIRED"),
    ],
)
def test_validate_packages(packages, code):
    with pytest.raises(InvalidPackages) as exc_info:
        validate_packages(parse(*packages))
    assert exc_info.value.code == code


def test_select_package_by_code_name_default_then_first():
    packages = parse(KIDS, RACE, PRIVATE)

    assert select_package(packages, {"packageCode": "private"}).code == "private"
    assert select_package(packages, {"packageId": "kids"}).code == "kids"
    assert select_package(packages, {"packageName": "Private hour"}).code == "private"
    assert select_package(packages, {}).code == "mini-race"
    assert select_package(parse(KIDS, PRIVATE), {}).code == "kids"
    assert select_package([], {"packageCode": "anything"}) is None


def test_select_unknown_package():
    with pytest.raises(PackageNotFound):
        select_package(parse(RACE), {"packageCode": "gold-race"})


def test_participant_limits():
    (kids,) = parse(KIDS)
    check_participants(kids, 2)
    check_participants(kids, 6)
    check_participants(None, 50)

    with pytest.raises(MinParticipantsNotMet) as low:
        check_participants(kids, 1)
    assert low.value.extra == {"minParticipants": 2, "selectedParticipants": 1}

    with pytest.raises(MaxParticipantsExceeded):
        check_participants(kids, 7)


def test_price_per_person_and_fixed(factory):
    _, _, _, activity = factory.setup()
    race, private = parse(RACE, PRIVATE)

    per_person = calculate_price(activity, race, 3)
    assert per_person["total"] == "75.00"
    assert per_person["currency"] == "EUR"
    assert per_person["breakdown"]["basePricePerPerson"] == "25.00"

    fixed = calculate_price(activity, private, 3)
    assert fixed["total"] == "450.00"
    assert "basePricePerPerson" not in fixed["breakdown"]


def test_price_without_packages_falls_back_to_price_from(factory):
    _, _, _, activity = factory.setup(price_from=12.5)
    assert calculate_price(activity, None, 2)["total"] == "25.00"

    _, _, _, free = factory.setup()
    assert calculate_price(free, None, 2) == {"total": "0.00", "currency": "EUR", "breakdown": {}}


def test_set_packages_recomputes_price_from(db_session, factory):
    owner, _, _, activity = factory.setup()

    updated = set_activity_packages(db_session, owner.id, activity.id, parse(RACE, KIDS, PRIVATE))

    assert updated.price_from == 20
    assert [p.code for p in load_packages(updated)] == ["mini-race", "kids", "private"]


def test_set_packages_requires_owner(db_session, factory):
    _, _, _, activity = factory.setup()
    stranger = factory.user()
    with pytest.raises(NotOwner):
        set_activity_packages(db_session, stranger.id, activity.id, parse(RACE))
