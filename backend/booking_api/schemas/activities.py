# backend/booking_api/schemas/activities.py
"""
Activity packages: a tagged variant keyed by pricing_type.

Packages are persisted in activities.config["packages"] with snake_case keys.
Unknown keys (track_type, age_min, ...) are kept as-is.
"""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, field_validator

from .common import CamelModel


class PackageBase(BaseModel):
    code: str = Field(min_length=1)
    title: str = Field(min_length=1)
    base_price: float = Field(ge=0)
    currency: str = "EUR"
    min_participants: Optional[int] = Field(None, ge=1)
    max_participants: Optional[int] = Field(None, ge=1)
    is_default: bool = False
    sort_order: Optional[int] = None
    description: Optional[str] = None

    model_config = {"extra": "allow"}


class PerPersonPackage(PackageBase):
    """Total = base_price × participants."""
    pricing_type: Literal["per_person"] = "per_person"


class FixedPackage(PackageBase):
    """Total = base_price regardless of participants."""
    pricing_type: Literal["fixed"]


Package = Annotated[
    Union[PerPersonPackage, FixedPackage],
    Field(discriminator="pricing_type"),
]

PackageList = TypeAdapter(list[Package])


def with_default_pricing_type(items):
    if not isinstance(items, list):
        return items
    result = []
    for item in items:
        if isinstance(item, dict) and not item.get("pricing_type"):
            item = {**item, "pricing_type": "per_person"}
        result.append(item)
    return result


class PackagesUpdate(BaseModel):
    packages: list[Package]

    @field_validator("packages", mode="before")
    @classmethod
    def default_pricing_type(cls, v):
        return with_default_pricing_type(v)


class ActivityRead(CamelModel):
    id: int
    business_id: int
    type_id: str
    title: str
    status: str
    availability_template_id: Optional[int] = None
    duration_minutes: Optional[int] = None
    capacity_override: Optional[int] = None
    price_from: Optional[float] = None
    config: dict
