from datetime import date, datetime
from types import SimpleNamespace
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

from redis.exceptions import ConnectionError as RedisConnectionError

from booking_api.services.slots.config import BookingConfig
from booking_api.services.slots.invalidator import invalidate_template_cache
from booking_api.services.slots.redis_store import EMPTY_SENTINEL, SlotsRedisStore
from booking_api.services.template_store import template_slots

CONFIG = BookingConfig(timezone="Europe/Luxembourg", cache_ttl_seconds=600)
LUX = ZoneInfo("Europe/Luxembourg")
DAY = date(2030, 6, 3)


def make_template(revision=3):
    return SimpleNamespace(
        id=42,
        revision=revision,
        slot_duration_minutes=60,
        weekly_schedule={"0": [["09:00", "11:00"]]},
        exceptions=[],
    )


def test_store_day_slots_writes_sorted_set_with_ttl():
    redis = MagicMock()
    pipe = redis.pipeline.return_value
    slots = [datetime(2030, 6, 3, 9, tzinfo=LUX), datetime(2030, 6, 3, 10, tzinfo=LUX)]

    SlotsRedisStore(redis, CONFIG).store_day_slots(42, 3, DAY, slots)

    key = "slots:grid:42:3:2030-06-03"
    pipe.delete.assert_called_once_with(key)
    pipe.zadd.assert_called_once_with(key, {s.isoformat(): s.timestamp() for s in slots})
    pipe.expire.assert_called_once_with(key, 600)
    pipe.execute.assert_called_once()


def test_empty_day_is_stored_as_sentinel():
    redis = MagicMock()
    SlotsRedisStore(redis, CONFIG).store_day_slots(42, 3, DAY, [])
    redis.pipeline.return_value.zadd.assert_called_once_with(
        "slots:grid:42:3:2030-06-03", {EMPTY_SENTINEL: 0}
    )


def test_get_day_slots_miss_hit_and_sentinel():
    redis = MagicMock()
    store = SlotsRedisStore(redis, CONFIG)

    redis.exists.return_value = 0
    assert store.get_day_slots(42, 3, DAY) is None

    redis.exists.return_value = 1
    redis.zrangebyscore.return_value = [b"2030-06-03T09:00:00+02:00"]
    assert store.get_day_slots(42, 3, DAY) == [datetime(2030, 6, 3, 9, tzinfo=LUX)]

    redis.zrangebyscore.return_value = [EMPTY_SENTINEL.encode()]
    assert store.get_day_slots(42, 3, DAY) == []


def test_template_slots_reads_through_the_cache():
    redis = MagicMock()
    redis.exists.return_value = 0

    slots = template_slots(make_template(), DAY, CONFIG, redis)

    assert [f"{s:%H:%M}" for s in slots] == ["09:00", "10:00"]
    redis.pipeline.return_value.zadd.assert_called_once()


def test_template_slots_serves_cached_grid():
    redis = MagicMock()
    redis.exists.return_value = 1
    redis.zrangebyscore.return_value = [b"2030-06-03T15:00:00+02:00"]

    slots = template_slots(make_template(), DAY, CONFIG, redis)

    assert [f"{s:%H:%M}" for s in slots] == ["15:00"]
    redis.pipeline.assert_not_called()


def test_template_slots_generates_when_redis_is_down():
    redis = MagicMock()
    redis.exists.side_effect = RedisConnectionError("down")

    slots = template_slots(make_template(), DAY, CONFIG, redis)

    assert [f"{s:%H:%M}" for s in slots] == ["09:00", "10:00"]


def test_invalidate_without_redis_is_a_noop():
    assert invalidate_template_cache(None, 42) == 0


def test_invalidate_drops_all_revisions():
    redis = MagicMock()
    redis.scan_iter.return_value = ["slots:grid:42:1:2030-06-03", "slots:grid:42:2:2030-06-04"]
    redis.delete.return_value = 2

    assert invalidate_template_cache(redis, 42) == 2
    redis.scan_iter.assert_called_once_with(match="slots:grid:42:*")


def test_invalidate_swallows_redis_errors():
    redis = MagicMock()
    redis.scan_iter.side_effect = RedisConnectionError("down")
    assert invalidate_template_cache(redis, 42) == 0
