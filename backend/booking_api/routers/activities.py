# backend/booking_api/routers/activities.py
# Only the package list is managed here; activity CRUD lives elsewhere

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_user_id
from ..schemas.activities import ActivityRead, PackagesUpdate
from ..services.packages import set_activity_packages

router = APIRouter(prefix="/activities", tags=["activities"])


@router.put("/{id}/packages", response_model=ActivityRead)
def replace_packages(
    id: int,
    data: PackagesUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return set_activity_packages(db, user_id, id, data.packages)
