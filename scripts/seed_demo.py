import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

from booking_api.database import SessionLocal, init_db
from booking_api.models import Activities, Businesses, Users
from booking_api.schemas.activities import PackageList, with_default_pricing_type
from booking_api.schemas.availability_templates import TemplateCreate
from booking_api.services.packages import set_activity_packages
from booking_api.services.template_store import create_template, get_active_template


# ======================================================
# DEMO DATA
# ======================================================

BUSINESS_NAME = "ActionFunCenter"
CITY = "Luxembourg"
ADDRESS = "2 rue Principale"

# Every activity duration needs an active template with the same slot length
WEEKLY_SCHEDULE = {
    "mon": [["14:00", "22:00"]],
    "tue": [["14:00", "22:00"]],
    "wed": [["14:00", "22:00"]],
    "thu": [["14:00", "22:00"]],
    "fri": [["14:00", "23:00"]],
    "sat": [["10:00", "23:00"]],
    "sun": [["10:00", "20:00"]],
}
KARTS_PER_SESSION = 12

SEEDS = [
    {
        "duration": 11,
        "title": "Karting — 11 min",
        "description": "ActionFunCenter formulas (11 min). Choose a package.",
        "packages": [
            {"code": "mini-race", "title": "Mini Race", "base_price": 25, "is_default": True,
             "sort_order": 0, "track_type": "indoor"},
            {"code": "kids-fun-race", "title": "KIDS Fun Race (8–12 years)", "base_price": 20,
             "sort_order": 1, "track_type": "indoor", "age_min": 8, "age_max": 12},
        ],
    },
    {
        "duration": 20,
        "title": "Karting — 20 min",
        "description": "ActionFunCenter formulas (20 min). Choose a package.",
        "packages": [
            {"code": "action-race", "title": "Action Race", "base_price": 35, "is_default": True,
             "sort_order": 0, "track_type": "indoor"},
            {"code": "kids-junior-race", "title": "KIDS Junior Race (8–12 years)", "base_price": 28,
             "sort_order": 1, "track_type": "indoor", "age_min": 8, "age_max": 12},
        ],
    },
    {
        "duration": 34,
        "title": "Karting — 34 min",
        "description": "Gold Race (min 5 karts): 11 min quali + 23 min race.",
        "packages": [
            {"code": "gold-race", "title": "Gold Race", "base_price": 58, "is_default": True,
             "sort_order": 0, "track_type": "indoor", "min_participants": 5},
        ],
    },
    {
        "duration": 60,
        "title": "Karting — private hour",
        "description": "Exclusive track hire for a group.",
        "packages": [
            {"code": "private-hour", "title": "Private hour", "base_price": 450, "is_default": True,
             "pricing_type": "fixed", "min_participants": 4, "max_participants": 12},
        ],
    },
]


def get_or_create_user(db, email: str, **fields) -> Users:
    user = db.query(Users).filter(Users.email == email).first()
    if user:
        return user
    user = Users(email=email, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main():
    init_db()
    db = SessionLocal()
    try:
        owner = get_or_create_user(
            db, "owner@example.com", first_name="Demo", last_name="Owner", phone_number="+352621000001"
        )
        consumer = get_or_create_user(
            db, "player@example.com", first_name="Demo", last_name="Player", phone_number="+352621000002"
        )

        business = db.query(Businesses).filter(Businesses.name == BUSINESS_NAME).first()
        if not business:
            business = Businesses(
                owner_user_id=owner.id,
                name=BUSINESS_NAME,
                city=CITY,
                address=ADDRESS,
                contact_email="hello@example.com",
            )
            db.add(business)
            db.commit()
            db.refresh(business)
        print(f"Business: {business.id} {business.name}")

        for seed in SEEDS:
            template = get_active_template(db, business.id, seed["duration"])
            if template is None:
                template = create_template(
                    db,
                    owner.id,
                    business.id,
                    TemplateCreate(
                        name=f"Karting {seed['duration']} min",
                        weekly_schedule=WEEKLY_SCHEDULE,
                        slot_duration_minutes=seed["duration"],
                        capacity_per_slot=KARTS_PER_SESSION,
                    ),
                )
            print(f"  template {template.id}: {template.slot_duration_minutes} min × {template.capacity_per_slot}")

            activity = (
                db.query(Activities)
                .filter(Activities.business_id == business.id, Activities.title == seed["title"])
                .first()
            )
            if activity is None:
                activity = Activities(
                    business_id=business.id,
                    type_id="karting",
                    title=seed["title"],
                    description=seed["description"],
                    status="published",
                    config={},
                    availability_template_id=template.id,
                    duration_minutes=seed["duration"],
                    city=CITY,
                    address=ADDRESS,
                )
                db.add(activity)
                db.commit()
                db.refresh(activity)

            packages = PackageList.validate_python(with_default_pricing_type(seed["packages"]))
            activity = set_activity_packages(db, owner.id, activity.id, packages)
            print(f"  activity {activity.id}: {activity.title} (from {activity.price_from} EUR)")

        print(f"Owner user id: {owner.id}, consumer user id: {consumer.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
