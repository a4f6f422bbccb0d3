# backend/booking_api/services/packages.py
"""
Activity packages: validation, price_from and booking price calculation.

price_from is NOT entered by the owner: it is min(base_price) over the
activity's packages and is recomputed whenever the package list changes.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..errors import (
    ActivityNotFound,
    InvalidPackages,
    MaxParticipantsExceeded,
    MinParticipantsNotMet,
    NotOwner,
    PackageNotFound,
)
from ..models import Activities
from ..schemas.activities import FixedPackage, Package, PackageList, with_default_pricing_type

logger = logging.getLogger(__name__)


def validate_packages(packages: list[Package]) -> None:
    """Unique codes, at most one default, min_participants <= max_participants."""
    seen: set[str] = set()
    defaults = 0

    for pkg in packages:
        code = pkg.code.strip()
        if not code:
            raise InvalidPackages("Package code is required", code="PACKAGE_CODE_REQUIRED")
        if code in seen:
            raise InvalidPackages(
                f"Duplicate package code {code!r}", code="PACKAGE_CODE_DUPLICATE", packageCode=code
            )
        seen.add(code)

        if pkg.is_default:
            defaults += 1

        if (
            pkg.min_participants is not None
            and pkg.max_participants is not None
            and pkg.min_participants > pkg.max_participants
        ):
            raise InvalidPackages(
                f"Package {code!r}: min_participants exceeds max_participants",
                code="INVALID_PARTICIPANT_RANGE",
                packageCode=code,
            )

    if defaults > 1:
        raise InvalidPackages(
            "Only one package can be the default", code="MULTIPLE_DEFAULT_PACKAGES"
        )


def compute_price_from(packages: list[Package]) -> Optional[float]:
    if not packages:
        return None
    return min(pkg.base_price for pkg in packages)


def load_packages(activity: Activities) -> list[Package]:
    """Packages stored on an activity (validated at write time)."""
    raw = (activity.config or {}).get("packages") or []
    try:
        return PackageList.validate_python(with_default_pricing_type(raw))
    except ValidationError as e:
        raise InvalidPackages(f"Activity {activity.id} has malformed packages: {e.error_count()} error(s)")


def select_package(packages: list[Package], selection_data: dict) -> Optional[Package]:
    """
    Package named by selectionData (packageCode / packageId, or packageName),
    else the default package, else the first one. None when there are no packages.
    """
    if not packages:
        return None

    requested = selection_data.get("packageCode") or selection_data.get("packageId")
    name = selection_data.get("packageName")

    if requested or name:
        for pkg in packages:
            if (requested and pkg.code == requested) or (name and pkg.title == name):
                return pkg
        raise PackageNotFound(
            f"Package {requested or name!r} does not exist for this activity",
            packageCode=requested,
        )

    for pkg in packages:
        if pkg.is_default:
            return pkg
    return packages[0]


def check_participants(pkg: Optional[Package], participants_count: int) -> None:
    if pkg is None:
        return

    if pkg.min_participants and participants_count < pkg.min_participants:
        raise MinParticipantsNotMet(
            f"This package requires at least {pkg.min_participants} participants. "
            f"You selected {participants_count}.",
            minParticipants=pkg.min_participants,
            selectedParticipants=participants_count,
        )

    if pkg.max_participants and participants_count > pkg.max_participants:
        raise MaxParticipantsExceeded(
            f"This package allows maximum {pkg.max_participants} participants. "
            f"You selected {participants_count}.",
            maxParticipants=pkg.max_participants,
            selectedParticipants=participants_count,
        )


def calculate_price(
    activity: Activities,
    pkg: Optional[Package],
    participants_count: int,
) -> dict:
    """Price snapshot: {"total": "50.00", "currency": "EUR", "breakdown": {...}}."""
    if pkg is not None:
        base = float(pkg.base_price)
        pricing_type = pkg.pricing_type
        total = base if isinstance(pkg, FixedPackage) else base * participants_count

        breakdown = {
            "basePrice": f"{base:.2f}",
            "pricingType": pricing_type,
            "participantsCount": participants_count,
            "packageCode": pkg.code,
            "packageName": pkg.title,
        }
        if pricing_type == "per_person":
            breakdown["basePricePerPerson"] = f"{base:.2f}"

        return {
            "total": f"{total:.2f}",
            "currency": pkg.currency or "EUR",
            "breakdown": breakdown,
        }

    if activity.price_from:
        base = float(activity.price_from)
        return {
            "total": f"{base * participants_count:.2f}",
            "currency": "EUR",
            "breakdown": {
                "basePricePerPerson": f"{base:.2f}",
                "participantsCount": participants_count,
            },
        }

    return {"total": "0.00", "currency": "EUR", "breakdown": {}}


def set_activity_packages(
    db: Session,
    user_id: int,
    activity_id: int,
    packages: list[Package],
) -> Activities:
    """Replace an activity's packages and recompute price_from (owner only)."""
    activity = db.get(Activities, activity_id)
    if not activity:
        raise ActivityNotFound("Activity not found")
    if activity.business.owner_user_id != user_id:
        raise NotOwner("You do not own this activity")

    validate_packages(packages)

    config = dict(activity.config or {})
    config["packages"] = [pkg.model_dump(exclude_none=True) for pkg in packages]
    activity.config = config
    activity.price_from = compute_price_from(packages)

    db.commit()
    db.refresh(activity)
    logger.info(
        f"Packages updated: activity={activity.id}, count={len(packages)}, "
        f"price_from={activity.price_from}"
    )
    return activity
