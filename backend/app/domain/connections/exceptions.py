"""Domain-level exceptions for connection requests."""

from __future__ import annotations

from app.infra.rate_limit import RateLimitExceeded


class ConnectionsError(Exception):
	"""Base class for connection errors.

	``reason`` is a stable machine code; ``str(exc)`` is the message shown to
	the user.
	"""

	reason: str = "unknown"
	message: str = "Something went wrong"

	def __init__(self, message: str | None = None, *, reason: str | None = None) -> None:
		super().__init__(message or self.message)
		if reason:
			self.reason = reason


class RequestConflict(ConnectionsError):
	reason = "conflict"
	message = "A connection request already exists between these users"


class SelfRequest(RequestConflict):
	reason = "self_request"
	message = "You cannot send a connection request to yourself"


class RequestForbidden(ConnectionsError):
	reason = "forbidden"
	message = "You are not allowed to modify this request"


class RequestNotFound(ConnectionsError):
	reason = "not_found"
	message = "Connection request not found"


class RequestGone(ConnectionsError):
	reason = "gone"
	message = "This connection request is no longer pending"


class NotConnected(ConnectionsError):
	reason = "not_connected"
	message = "You are not connected with this user"


class InvalidMessage(ConnectionsError):
	reason = "invalid_message"
	message = "Message is too long"


class OperationInFlight(ConnectionsError):
	reason = "in_flight"
	message = "This action is already in progress"


class GatewayUnavailable(ConnectionsError):
	reason = "unavailable"
	message = "Service temporarily unavailable"


class RequestRateLimitExceeded(RateLimitExceeded):
	"""Raised when request sending hits a quota."""

	message = "Too many connection requests, please try again later"

	def __init__(self, reason: str) -> None:
		super().__init__(self.message)
		self.reason = reason
