from datetime import datetime, timedelta, timezone

import pytest

from app.infra.rate_limit import allow_per_day, allow_per_minute, touch


@pytest.mark.asyncio
async def test_touch_counts_and_sets_ttl(fake_redis):
    assert await touch("rl:test:k", 60) == 1
    assert await touch("rl:test:k", 60) == 2
    assert 0 < await fake_redis.ttl("rl:test:k") <= 60


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    now = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert await allow_per_minute("nearby", "u6", limit=1, now=now)
    assert not await allow_per_minute("nearby", "u6", limit=1, now=now)


@pytest.mark.asyncio
async def test_rate_limit_window_rolls_over():
    now = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
    assert await allow_per_minute("hb", "u5", limit=1, now=now)
    assert await allow_per_minute("hb", "u5", limit=1, now=now + timedelta(minutes=1))
    assert await allow_per_day("hb", "u5", limit=1, now=now)
    assert not await allow_per_day("hb", "u5", limit=1, now=now + timedelta(hours=2))
