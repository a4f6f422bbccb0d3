# backend/booking_api/deps.py
"""
Request identity.

Authentication happens in front of this service; the gateway forwards the
authenticated user id in the X-User-Id header.
"""

from typing import Optional
from fastapi import Header

from .errors import Unauthorized


def get_current_user_id(
    x_user_id: Optional[int] = Header(None, alias="X-User-Id"),
) -> int:
    if x_user_id is None:
        raise Unauthorized("Missing X-User-Id header")
    return x_user_id
