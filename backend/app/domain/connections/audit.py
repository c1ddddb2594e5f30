"""Audit stream for connection request events."""

from __future__ import annotations

from typing import Dict

from app.infra.redis import redis_client

STREAM = "x:connections.events"


async def log_request_event(event: str, fields: Dict[str, str]) -> None:
	payload = {"event": event, **{key: str(value) for key, value in fields.items() if value is not None}}
	await redis_client.xadd(STREAM, payload)
