"""Domain models for connection requests and connections."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RequestStatus(str, Enum):
	"""Lifecycle of a directional connection request."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	REJECTED = "rejected"


class PairStatus(str, Enum):
	"""Relationship between the current user and another profile."""

	NONE = "none"
	SENT = "sent"
	RECEIVED = "received"
	CONNECTED = "connected"


UNKNOWN_NAME = "Unknown"


@dataclass(slots=True)
class ConnectionRequest:
	"""A request row, enriched with the names of both parties when available."""

	id: str
	sender_id: str
	receiver_id: str
	status: RequestStatus
	created_at: datetime
	message: Optional[str] = None
	updated_at: Optional[datetime] = None
	sender_name: str = UNKNOWN_NAME
	receiver_name: str = UNKNOWN_NAME
	sender_profile_picture: Optional[str] = None

	@classmethod
	def from_record(cls, record: dict) -> "ConnectionRequest":
		return cls(
			id=str(record["id"]),
			sender_id=str(record["sender_id"]),
			receiver_id=str(record["receiver_id"]),
			status=RequestStatus(record["status"]),
			created_at=record["created_at"],
			message=record.get("message"),
			updated_at=record.get("updated_at"),
			sender_name=record.get("sender_name") or UNKNOWN_NAME,
			receiver_name=record.get("receiver_name") or UNKNOWN_NAME,
			sender_profile_picture=record.get("sender_profile_picture"),
		)

	def involves(self, user_a: str, user_b: str) -> bool:
		return {self.sender_id, self.receiver_id} == {str(user_a), str(user_b)}

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"sender_id": self.sender_id,
			"receiver_id": self.receiver_id,
			"status": self.status.value,
			"message": self.message,
			"created_at": self.created_at.isoformat(),
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
			"sender_name": self.sender_name,
			"receiver_name": self.receiver_name,
			"sender_profile_picture": self.sender_profile_picture,
		}


@dataclass(slots=True)
class Connection:
	"""Unordered accepted pair."""

	id: str
	user1_id: str
	user2_id: str
	created_at: datetime

	@classmethod
	def from_record(cls, record: dict) -> "Connection":
		return cls(
			id=str(record["id"]),
			user1_id=str(record["user1_id"]),
			user2_id=str(record["user2_id"]),
			created_at=record["created_at"],
		)


@dataclass(slots=True, frozen=True)
class ResolvedStatus:
	status: PairStatus
	request_id: Optional[str] = None

	def to_dict(self) -> dict:
		return {"status": self.status.value, "request_id": self.request_id}
