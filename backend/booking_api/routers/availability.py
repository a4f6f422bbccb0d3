# backend/booking_api/routers/availability.py
"""
GET /availability - remaining capacity per slot for (activity, date, party size).
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import redis_client
from ..schemas.availability import AvailabilityResponse
from ..services.slots import get_booking_config
from ..services.slots.availability import resolve_availability


router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    activity_id: int = Query(..., alias="activityId"),
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    party_size: int = Query(1, alias="partySize", ge=1),
    db: Session = Depends(get_db),
):
    try:
        target_date = date.fromisoformat(date_str)
    except ValueError:
        # Not a calendar date (e.g. 2025-02-30): nothing to book
        return AvailabilityResponse(activity_id=activity_id, date=date_str, party_size=party_size)

    return resolve_availability(
        db,
        activity_id,
        target_date,
        party_size=party_size,
        config=get_booking_config(),
        redis=redis_client,
    )
