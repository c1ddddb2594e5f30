"""Notification records shown in the bell feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

CONNECTION_REQUEST = "connection_request"
CONNECTION_ACCEPTED = "connection_accepted"

BADGE_CAP = 99


@dataclass(slots=True)
class Notification:
	id: str
	user_id: str
	type: str
	title: str
	description: str
	created_at: datetime
	read: bool = False
	action_type: Optional[str] = None
	action_id: Optional[str] = None
	created_by: Optional[str] = None

	@classmethod
	def from_record(cls, record: dict) -> "Notification":
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			type=record["type"],
			title=record["title"],
			description=record["description"],
			created_at=record["created_at"],
			read=bool(record.get("read")),
			action_type=record.get("action_type"),
			action_id=str(record["action_id"]) if record.get("action_id") else None,
			created_by=str(record["created_by"]) if record.get("created_by") else None,
		)

	@property
	def actionable(self) -> bool:
		return self.type == CONNECTION_REQUEST and self.action_id is not None

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"user_id": self.user_id,
			"type": self.type,
			"title": self.title,
			"description": self.description,
			"created_at": self.created_at.isoformat(),
			"read": self.read,
			"action_type": self.action_type,
			"action_id": self.action_id,
			"created_by": self.created_by,
		}
