import sys, pathlib
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "backend"))

from sqlalchemy import text
from booking_api.database import SessionLocal
from booking_api.models import Activities, AvailabilityTemplates, Bookings, Businesses


def main():
    db = SessionLocal()
    try:
        print("DB OK:", db.execute(text("SELECT 1")).scalar())
        print("Businesses:", db.query(Businesses).count())
        print("Templates (active):", db.query(AvailabilityTemplates).filter(AvailabilityTemplates.status == "active").count())
        print("Activities:", db.query(Activities).count())
        print("Bookings (active):", db.query(Bookings).filter(Bookings.status == "active").count())
    finally:
        db.close()


if __name__ == "__main__":
    main()
