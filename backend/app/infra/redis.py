"""Shared Redis handle for rate limits, busy flags, audit and health checks.

Modules import ``redis_client`` once; the connection behind it is created on
first use and can be replaced with ``set_redis_client`` (tests install
fakeredis this way).
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as redis

from app.settings import settings


class RedisHandle:
	def __init__(self, url: str) -> None:
		self._url = url
		self._client: Optional[redis.Redis] = None

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = redis.from_url(self._url, decode_responses=True)
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	def __getattr__(self, name: str):
		return getattr(self.client, name)


redis_client = RedisHandle(settings.redis_url)


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)
