# backend/booking_api/routers/bookings.py
# PATCH / DELETE = 405: bookings only change status through /cancel

from typing import Literal, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_user_id
from ..redis_client import redis_client
from ..schemas.bookings import (
    BookingCancel,
    BookingCreate,
    BookingList,
    BookingRead,
    BusinessStats,
)
from ..services import booking_manager

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return booking_manager.create_booking(db, user_id, data, redis=redis_client)


@router.get("", response_model=BookingList)
def list_my_bookings(
    kind: Literal["upcoming", "past"] = "upcoming",
    limit: int = Query(booking_manager.DEFAULT_PAGE_SIZE, ge=1, le=booking_manager.MAX_PAGE_SIZE),
    cursor: Optional[str] = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return booking_manager.list_bookings(db, user_id, kind=kind, limit=limit, cursor=cursor)


@router.get("/business/{business_id}/list", response_model=BookingList)
def list_business_bookings(
    business_id: int,
    status_filter: Optional[Literal["active", "cancelled", "completed"]] = Query(None, alias="status"),
    kind: Optional[Literal["upcoming", "past", "today"]] = None,
    limit: int = Query(booking_manager.DEFAULT_PAGE_SIZE, ge=1, le=booking_manager.MAX_PAGE_SIZE),
    cursor: Optional[str] = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return booking_manager.list_business_bookings(
        db,
        user_id,
        business_id,
        status=status_filter,
        kind=kind,
        limit=limit,
        cursor=cursor,
    )


@router.get("/business/{business_id}/stats", response_model=BusinessStats)
def get_business_stats(
    business_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return booking_manager.business_stats(db, user_id, business_id)


@router.get("/{id}", response_model=BookingRead)
def get_booking(
    id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return booking_manager.get_booking(db, user_id, id)


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking(
    id: int,
    data: Optional[BookingCancel] = Body(None),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    reason = data.reason if data else None
    return booking_manager.cancel_booking(db, user_id, id, reason=reason)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
