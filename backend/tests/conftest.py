import os
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Tests never touch a developer database, Redis or the background sweep.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["REDIS_URL"] = ""
os.environ["COMPLETION_CHECKER_ENABLED"] = "false"

from booking_api.database import build_engine, get_db, init_db
from booking_api.main import app
from booking_api.models import Activities, AvailabilityTemplates, Businesses, TemplateExceptions, Users
from booking_api.schemas.bookings import BookingCreate
from booking_api.services.booking_manager import create_booking
from booking_api.services.slots.config import BookingConfig

# Service-level tests run in UTC with a frozen clock.
UTC_CONFIG = BookingConfig(timezone="UTC")
NOW = datetime(2030, 6, 1, 12, 0)
DAY = date(2030, 6, 3)  # a Monday, two days after NOW

EVERY_DAY_9_TO_12 = {str(d): [["09:00", "12:00"]] for d in range(7)}


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite per test: real locking, usable from several threads."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}", busy_timeout_seconds=30)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient whose requests each get their own session on the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_db, None)


class Factory:
    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, phone_number="+352621000000", **fields):
        self._seq += 1
        fields.setdefault("first_name", f"User{self._seq}")
        fields.setdefault("email", f"user{self._seq}@example.com")
        return self._save(Users(phone_number=phone_number, **fields))

    def business(self, owner=None, **fields):
        owner = owner or self.user()
        fields.setdefault("name", "Kart Center")
        fields.setdefault("city", "Luxembourg")
        return self._save(Businesses(owner_user_id=owner.id, **fields))

    def template(
        self,
        business,
        duration=60,
        capacity=4,
        schedule=None,
        status="active",
        exceptions=(),
    ):
        template = AvailabilityTemplates(
            business_id=business.id,
            name=f"{duration} min",
            status=status,
            slot_duration_minutes=duration,
            capacity_per_slot=capacity,
            weekly_schedule=schedule if schedule is not None else EVERY_DAY_9_TO_12,
            exceptions=[
                TemplateExceptions(start_date=start, end_date=end, reason="closed")
                for start, end in exceptions
            ],
        )
        return self._save(template)

    def activity(
        self,
        business,
        template=None,
        status="published",
        packages=None,
        duration=None,
        capacity_override=None,
        **fields,
    ):
        fields.setdefault("title", "Karting")
        fields.setdefault("type_id", "karting")
        activity = Activities(
            business_id=business.id,
            status=status,
            config={"packages": packages} if packages is not None else {},
            availability_template_id=template.id if template else None,
            duration_minutes=duration or (template.slot_duration_minutes if template else None),
            capacity_override=capacity_override,
            **fields,
        )
        return self._save(activity)

    def setup(self, capacity=4, packages=None, **activity_fields):
        """Owner + business + active 60-min template + published activity."""
        owner = self.user()
        business = self.business(owner)
        template = self.template(business, capacity=capacity)
        activity = self.activity(business, template, packages=packages, **activity_fields)
        return owner, business, template, activity


@pytest.fixture(scope="function")
def factory(db_session):
    return Factory(db_session)


def book(db, user, activity, hour, participants=1, minute=0, day=DAY, now=NOW, config=UTC_CONFIG, **selection):
    """create_booking on DAY at hour:minute UTC with the frozen clock."""
    data = BookingCreate(
        activity_id=activity.id,
        slot_start=datetime(day.year, day.month, day.day, hour, minute),
        participants_count=participants,
        selection_data=selection,
    )
    return create_booking(db, user.id, data, config=config, now=now)
