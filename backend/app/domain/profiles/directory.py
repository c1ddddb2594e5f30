"""Discoverable profile listing, grouped by role and institution affinity."""

from __future__ import annotations

import logging
from typing import List, Optional

from app.domain.identity.session import SessionContext
from app.domain.profiles.models import Profile, Role

logger = logging.getLogger(__name__)


def order_by_institution(profiles: List[Profile], institution_id: Optional[str]) -> List[Profile]:
	"""Move profiles from ``institution_id`` to the front, keeping relative order."""
	if not institution_id:
		return list(profiles)
	same = [p for p in profiles if p.institution_id == institution_id]
	other = [p for p in profiles if p.institution_id != institution_id]
	return same + other


def _public(profile: Profile) -> dict:
	data = profile.to_dict()
	data["email"] = ""
	return data


class ProfileDirectory:
	def __init__(self, session: SessionContext, profiles_repo) -> None:
		self._session = session
		self._repo = profiles_repo
		self.students: List[Profile] = []
		self.mentors: List[Profile] = []
		self.authorities: List[Profile] = []

	@property
	def all(self) -> List[Profile]:
		return self.students + self.mentors + self.authorities

	def find(self, user_id: str) -> Optional[Profile]:
		for profile in self.all:
			if profile.user_id == str(user_id):
				return profile
		return None

	async def refresh(self, search_term: Optional[str] = None) -> None:
		"""Reload the directory; without a session profile there is nothing to scope by."""
		current = self._session.profile
		if current is None:
			return
		profiles = await self._repo.list_discovery_profiles(current.user_id, search_term)
		ordered = order_by_institution(profiles, current.institution_id)
		self.students = [p for p in ordered if p.role is Role.STUDENT]
		self.mentors = [p for p in ordered if p.is_mentor]
		self.authorities = [p for p in ordered if p.role is Role.AUTHORITY]
		logger.debug(
			"profile directory refreshed",
			extra={"students": len(self.students), "mentors": len(self.mentors), "authorities": len(self.authorities)},
		)

	def to_dict(self) -> dict:
		return {
			"students": [_public(p) for p in self.students],
			"mentors": [_public(p) for p in self.mentors],
			"authorities": [_public(p) for p in self.authorities],
		}
