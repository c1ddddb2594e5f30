"""Validation and quota guards for connection requests."""

from __future__ import annotations

from typing import Optional

from app.domain.connections.exceptions import InvalidMessage, RequestRateLimitExceeded, SelfRequest
from app.infra import rate_limit
from app.settings import settings


async def enforce_request_limits(user_id: str) -> None:
	if not await rate_limit.allow_per_minute("connreq:send", user_id, limit=settings.request_per_minute):
		raise RequestRateLimitExceeded("per_minute")
	if not await rate_limit.allow_per_day("connreq", user_id, limit=settings.request_per_day):
		raise RequestRateLimitExceeded("per_day")


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise SelfRequest()


def normalize_message(message: Optional[str]) -> Optional[str]:
	"""Blank messages are stored as NULL; overly long ones are rejected."""
	if message is None:
		return None
	text = message.strip()
	if not text:
		return None
	if len(text) > settings.request_message_max:
		raise InvalidMessage(f"Message must be at most {settings.request_message_max} characters")
	return text
