"""Per-session notification feed.

Holds the most recent page of notifications, newest first. A change-feed
subscription on the user's notifications triggers a full refetch; there is no
incremental merge.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from app.domain.common.feedback import Feedback
from app.domain.connections.service import ConnectionService
from app.domain.identity.session import SessionContext
from app.domain.notifications.models import BADGE_CAP, Notification
from app.domain.notifications.repo import TABLE, NotificationNotFound
from app.domain.notifications.service import NotificationService
from app.infra.change_feed import ChangeFeed, Subscription, change_feed

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[dict], Awaitable[None]]


def badge_label(count: int) -> str:
	if count <= 0:
		return ""
	return f"{BADGE_CAP}+" if count > BADGE_CAP else str(count)


class NotificationFeed:
	def __init__(
		self,
		session: SessionContext,
		service: NotificationService,
		connections: ConnectionService,
		feed: ChangeFeed = change_feed,
	) -> None:
		self._session = session
		self._service = service
		self._connections = connections
		self._feed = feed
		self._subscription: Optional[Subscription] = None
		self._listener: Optional[SnapshotListener] = None
		self.items: List[Notification] = []

	@property
	def subscribed(self) -> bool:
		return self._subscription is not None

	async def refresh(self) -> List[Notification]:
		user = self._session.require_user()
		self.items = await self._service.list_recent(user.id)
		return self.items

	def on_update(self, listener: SnapshotListener) -> None:
		"""Receive the snapshot after every push-triggered refetch."""
		self._listener = listener

	async def _on_change(self, row: dict) -> None:
		logger.debug("notification change received", extra={"notification_id": row.get("id")})
		await self.refresh()
		if self._listener is not None:
			await self._listener(self.snapshot())

	def start(self) -> None:
		if self._subscription is not None:
			return
		user = self._session.require_user()
		self._subscription = self._feed.subscribe(TABLE, user.id, self._on_change)
		self._session.on_close(self.stop)

	def stop(self) -> None:
		if self._subscription is None:
			return
		self._subscription.unsubscribe()
		self._subscription = None

	async def close(self) -> None:
		"""Sign the owning session out, which also stops the subscription."""
		self._listener = None
		await self._session.sign_out()

	def get(self, notification_id: str) -> Optional[Notification]:
		for item in self.items:
			if item.id == str(notification_id):
				return item
		return None

	async def mark_as_read(self, notification_id: str) -> Notification:
		"""Mark one notification read; repeating the call is harmless."""
		user = self._session.require_user()
		updated = await self._service.mark_read(user.id, str(notification_id))
		local = self.get(updated.id)
		if local is not None:
			local.read = True
		return updated

	async def respond(self, notification_id: str, accept: bool) -> Feedback:
		"""Accept or decline the connection request behind a notification."""
		notification = self.get(notification_id)
		if notification is None:
			await self.refresh()
			notification = self.get(notification_id)
		if notification is None:
			raise NotificationNotFound(notification_id)
		if not notification.actionable:
			return Feedback.failure("This notification has no action", reason="not_actionable")
		feedback = await self._connections.respond(notification.action_id, accept)
		if feedback.ok:
			await self.mark_as_read(notification.id)
		return feedback

	@property
	def unread_count(self) -> int:
		return sum(1 for item in self.items if not item.read)

	@property
	def badge_label(self) -> str:
		return badge_label(self.unread_count)

	def snapshot(self) -> dict:
		return {
			"items": [item.to_dict() for item in self.items],
			"unread_count": self.unread_count,
			"badge": self.badge_label,
		}
