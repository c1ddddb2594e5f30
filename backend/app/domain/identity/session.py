"""Explicit per-user session context.

A context is created on sign-in with the caller's profile, handed to every
service that needs "the current user", and torn down on sign-out. Teardown
hooks (feed unsubscription, for instance) run in registration order.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Union

from app.domain.identity.exceptions import NotAuthenticated
from app.domain.profiles.models import Profile
from app.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

TeardownHook = Callable[[], Union[None, Awaitable[None]]]


class SessionContext:
	def __init__(self, user: AuthenticatedUser, profile: Optional[Profile] = None) -> None:
		self._user: Optional[AuthenticatedUser] = user
		self.profile = profile
		self._teardown: List[TeardownHook] = []

	@classmethod
	async def sign_in(cls, user: AuthenticatedUser, profiles_repo) -> "SessionContext":
		profile = await profiles_repo.fetch_profile(user.id)
		if profile is None:
			logger.info("session without profile", extra={"user_id": user.id})
		return cls(user, profile)

	@property
	def active(self) -> bool:
		return self._user is not None

	@property
	def user(self) -> Optional[AuthenticatedUser]:
		return self._user

	@property
	def user_id(self) -> Optional[str]:
		return self._user.id if self._user else None

	def require_user(self) -> AuthenticatedUser:
		if self._user is None:
			raise NotAuthenticated()
		return self._user

	def on_close(self, hook: TeardownHook) -> None:
		self._teardown.append(hook)

	async def sign_out(self) -> None:
		if self._user is None:
			return
		hooks, self._teardown = self._teardown, []
		for hook in hooks:
			try:
				result = hook()
				if result is not None:
					await result
			except Exception:
				logger.exception("session teardown hook failed", extra={"user_id": self._user.id})
		self._user = None
		self.profile = None
