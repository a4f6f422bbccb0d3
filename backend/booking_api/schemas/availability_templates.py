# backend/booking_api/schemas/availability_templates.py

from datetime import date, datetime
from typing import Any, Literal, Optional
from pydantic import Field

from .common import CamelModel


class TemplateExceptionIn(CamelModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None


class TemplateExceptionRead(CamelModel):
    id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None


class TemplateCreate(CamelModel):
    name: str = Field(min_length=1)
    # weekday ("0".."6" or "mon".."sun") → [["HH:MM", "HH:MM"], ...]
    weekly_schedule: dict[str, Any]
    slot_duration_minutes: int = Field(gt=0)
    capacity_per_slot: int = Field(ge=1)
    status: Literal["draft", "active"] = "active"
    exceptions: list[TemplateExceptionIn] = []


class TemplateUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    weekly_schedule: Optional[dict[str, Any]] = None
    slot_duration_minutes: Optional[int] = Field(None, gt=0)
    capacity_per_slot: Optional[int] = Field(None, ge=1)
    exceptions: Optional[list[TemplateExceptionIn]] = None


class TemplateRead(CamelModel):
    id: int
    business_id: int
    name: str
    status: str
    slot_duration_minutes: int
    capacity_per_slot: int
    weekly_schedule: dict[str, Any]
    revision: int
    exceptions: list[TemplateExceptionRead] = []
    created_at: datetime
    updated_at: datetime
