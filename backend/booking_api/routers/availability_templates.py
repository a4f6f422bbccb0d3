# backend/booking_api/routers/availability_templates.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_current_user_id
from ..redis_client import redis_client
from ..schemas.availability_templates import TemplateCreate, TemplateRead, TemplateUpdate
from ..services import template_store

router = APIRouter(tags=["availability-templates"])


@router.post(
    "/businesses/{business_id}/availability-templates",
    response_model=TemplateRead,
    status_code=status.HTTP_201_CREATED,
)
def create_template(
    business_id: int,
    data: TemplateCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.create_template(db, user_id, business_id, data)


@router.get(
    "/businesses/{business_id}/availability-templates",
    response_model=list[TemplateRead],
)
def list_templates(
    business_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.list_templates(db, user_id, business_id)


@router.get("/availability-templates/{id}", response_model=TemplateRead)
def get_template(
    id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.get_template(db, user_id, id)


@router.patch("/availability-templates/{id}", response_model=TemplateRead)
def update_template(
    id: int,
    data: TemplateUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.update_template(db, user_id, id, data, redis=redis_client)


@router.post("/availability-templates/{id}/activate", response_model=TemplateRead)
def activate_template(
    id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.activate_template(db, user_id, id)


@router.post("/availability-templates/{id}/deactivate", response_model=TemplateRead)
def deactivate_template(
    id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return template_store.deactivate_template(db, user_id, id, redis=redis_client)
