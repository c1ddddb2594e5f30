"""Domain models for campus profiles."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
	STUDENT = "student"
	MENTOR = "mentor"
	TEACHER = "teacher"
	AUTHORITY = "authority"


ROLE_VALUES = tuple(role.value for role in Role)

# Columns an authority may fill in after the account exists.
OPTIONAL_PROFILE_FIELDS = ("phone_number", "course", "section", "branch")


def _opt_str(value: object) -> Optional[str]:
	return str(value) if value is not None else None


@dataclass(slots=True)
class Profile:
	"""Public profile row; one per account."""

	user_id: str
	full_name: str
	email: str
	department: str
	role: Role
	year_of_study: Optional[int] = None
	bio: Optional[str] = None
	profile_picture_url: Optional[str] = None
	institution_id: Optional[str] = None
	connections_count: int = 0
	daily_streak: int = 0
	institution_roll_number: Optional[str] = None
	phone_number: Optional[str] = None
	course: Optional[str] = None
	section: Optional[str] = None
	branch: Optional[str] = None
	created_at: Optional[datetime] = None

	@classmethod
	def from_record(cls, record: dict) -> "Profile":
		return cls(
			user_id=str(record["user_id"]),
			full_name=record["full_name"],
			email=record.get("email") or "",
			department=record.get("department") or "",
			role=Role(record.get("role") or Role.STUDENT.value),
			year_of_study=record.get("year_of_study"),
			bio=record.get("bio"),
			profile_picture_url=record.get("profile_picture_url"),
			institution_id=_opt_str(record.get("institution_id")),
			connections_count=int(record.get("connections_count") or 0),
			daily_streak=int(record.get("daily_streak") or 0),
			institution_roll_number=record.get("institution_roll_number"),
			phone_number=record.get("phone_number"),
			course=record.get("course"),
			section=record.get("section"),
			branch=record.get("branch"),
			created_at=record.get("created_at"),
		)

	@property
	def is_mentor(self) -> bool:
		return self.role in (Role.MENTOR, Role.TEACHER)

	def to_dict(self) -> dict:
		data = asdict(self)
		data["role"] = self.role.value
		if self.created_at is not None:
			data["created_at"] = self.created_at.isoformat()
		return data
