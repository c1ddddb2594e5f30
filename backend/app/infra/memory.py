"""In-process row store used when Postgres is not available (tests, local demos).

Repositories in ``app.domain.*.repo`` ship a Postgres implementation and an
in-memory twin that shares one :class:`MemoryDatabase`, so cross-table
operations such as accepting a request see the same rows.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import uuid4


class MemoryDatabase:
	"""Table dictionaries guarded by a single asyncio lock."""

	def __init__(self) -> None:
		self.lock = asyncio.Lock()
		self.accounts: Dict[str, dict] = {}
		self.profiles: Dict[str, dict] = {}
		self.connection_requests: Dict[str, dict] = {}
		self.connections: Dict[str, dict] = {}
		self.notifications: Dict[str, dict] = {}
		self.mentoring_relationships: Dict[str, dict] = {}
		self.authority_audit_log: List[dict] = []
		self._failures: Dict[str, Exception] = {}
		self._epoch = datetime.now(timezone.utc)
		self._ticks = 0

	def now(self) -> datetime:
		# strictly increasing so "newest first" ordering is deterministic
		self._ticks += 1
		return self._epoch + timedelta(microseconds=self._ticks)

	@staticmethod
	def new_id() -> str:
		return str(uuid4())

	def fail_next(self, operation: str, error: Exception) -> None:
		"""Make the next call to ``operation`` raise ``error``."""
		self._failures[operation] = error

	def check(self, operation: str) -> None:
		error = self._failures.pop(operation, None)
		if error is not None:
			raise error

	def profile(self, user_id: str) -> Optional[dict]:
		return self.profiles.get(str(user_id))
