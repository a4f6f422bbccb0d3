# backend/booking_api/services/slots/invalidator.py
"""
Cache invalidation for template slot grids.

Triggers:
✓ Template schedule / duration / exceptions edited → drop older revisions
✓ Template deactivated → drop everything for the template

Does NOT trigger:
✗ Booking created/cancelled (occupancy is aggregated on every read)
"""

import logging
from redis import Redis
from redis.exceptions import RedisError

from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def invalidate_template_cache(
    redis: Redis | None,
    template_id: int,
    keep_revision: int | None = None,
) -> int:
    """
    Invalidate cached grids for a template.

    Args:
        redis: Redis client, or None when caching is disabled
        template_id: Template ID
        keep_revision: Current revision to keep, or None to drop all

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0

    try:
        return SlotsRedisStore(redis).delete_template_slots(template_id, keep_revision)
    except RedisError as e:
        # Revisioned keys can't be served stale; leftovers just expire by TTL
        logger.warning(f"Failed to invalidate slot cache for template {template_id}: {e}")
        return 0
