# backend/booking_api/services/slots/redis_store.py
"""
Redis storage for generated slot grids using Sorted Sets.

Key format: slots:grid:{template_id}:{revision}:{date}
Value: Sorted Set where member = slot start (ISO, business local time),
       score = unix timestamp of the slot start.

The template revision is part of the key, so an edited template never
serves an old grid. Occupancy is not stored here; it is always aggregated
from the bookings table.

Sentinel: "__empty__" with score=0 marks "calculated, zero slots".
"""

from datetime import date, datetime
from redis import Redis

from .config import BookingConfig, get_booking_config


EMPTY_SENTINEL = "__empty__"


def _decode(member) -> str:
    return member.decode() if isinstance(member, bytes) else member


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for slot grids."""

    KEY_PREFIX = "slots:grid"

    def __init__(self, redis: Redis, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()

    def _key(self, template_id: int, revision: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{template_id}:{revision}:{dt.isoformat()}"

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_slots(
        self,
        template_id: int,
        revision: int,
        dt: date,
        slots: list[datetime],
    ) -> None:
        """
        Store a generated grid for a day.

        Args:
            template_id: Template ID
            revision: Template revision the grid was generated from
            dt: Target date
            slots: Aware slot starts. Empty list → sentinel is stored.
        """
        key = self._key(template_id, revision, dt)
        pipe = self.redis.pipeline()

        pipe.delete(key)
        if slots:
            pipe.zadd(key, {s.isoformat(): s.timestamp() for s in slots})
        else:
            pipe.zadd(key, {EMPTY_SENTINEL: 0})
        pipe.expire(key, self.config.cache_ttl_seconds)

        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_day_slots(
        self,
        template_id: int,
        revision: int,
        dt: date,
    ) -> list[datetime] | None:
        """
        Get a cached grid.

        Returns:
            Ascending aware datetimes, or None on cache miss.
        """
        key = self._key(template_id, revision, dt)
        if not self.redis.exists(key):
            return None

        members = self.redis.zrangebyscore(key, "-inf", "+inf")
        return [
            datetime.fromisoformat(_decode(m))
            for m in members
            if _decode(m) != EMPTY_SENTINEL
        ]

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_template_slots(
        self,
        template_id: int,
        keep_revision: int | None = None,
    ) -> int:
        """
        Delete cached grids of a template.

        Args:
            template_id: Template ID
            keep_revision: Revision whose keys survive, or None to drop all.

        Returns:
            Number of deleted keys.
        """
        pattern = f"{self.KEY_PREFIX}:{template_id}:*"
        keys = [_decode(k) for k in self.redis.scan_iter(match=pattern)]
        if keep_revision is not None:
            keep_prefix = f"{self.KEY_PREFIX}:{template_id}:{keep_revision}:"
            keys = [k for k in keys if not k.startswith(keep_prefix)]

        if not keys:
            return 0

        return self.redis.delete(*keys)
