"""Simple Redis-backed rate limiting utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.infra.redis import redis_client


async def touch(key: str, ttl_seconds: int) -> int:
	"""Increment a counter key, refresh its ttl and return the new count."""
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, ttl_seconds)
		count, _ = await pipe.execute()
	return int(count)


async def allow_per_minute(kind: str, actor_id: str, *, limit: int, now: Optional[datetime] = None) -> bool:
	"""Return True when the actor is still within the per-minute budget."""
	now = now or datetime.now(timezone.utc)
	key = f"rl:{kind}:{actor_id}:{now.strftime('%Y%m%d%H%M')}"
	return await touch(key, 60) <= limit


async def allow_per_day(kind: str, actor_id: str, *, limit: int, now: Optional[datetime] = None) -> bool:
	"""Return True when the actor is still within the daily budget."""
	now = now or datetime.now(timezone.utc)
	key = f"rl:{kind}:daily:{actor_id}:{now.strftime('%Y%m%d')}"
	return await touch(key, 86_400) <= limit


class RateLimitExceeded(Exception):
	"""Raised when the rate limit has been hit."""
