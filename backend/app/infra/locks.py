"""Short-lived Redis flags shared by every worker."""

from __future__ import annotations

from app.infra.redis import redis_client


async def acquire(key: str, ttl_seconds: int) -> bool:
	"""Set ``key`` unless it already exists; True when this caller now holds it."""
	ok = await redis_client.set(key, "1", nx=True, ex=ttl_seconds)
	return bool(ok)


async def release(key: str) -> None:
	await redis_client.delete(key)


async def held(key: str) -> bool:
	return bool(await redis_client.exists(key))
