"""Creating, listing and reading notifications."""

from __future__ import annotations

import logging
from typing import List, Optional

from app.domain.notifications import sockets
from app.domain.notifications.models import Notification
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class NotificationService:
	def __init__(self, repo) -> None:
		self._repo = repo

	async def notify_user(
		self,
		user_id: str,
		*,
		type: str,
		title: str,
		description: str,
		action_type: Optional[str] = None,
		action_id: Optional[str] = None,
		created_by: Optional[str] = None,
	) -> Notification:
		notification = await self._repo.create(
			user_id=str(user_id),
			type=type,
			title=title,
			description=description,
			action_type=action_type,
			action_id=action_id,
			created_by=created_by,
		)
		obs_metrics.inc_notification_created(type)
		try:
			await sockets.emit_notification_new(notification.user_id, notification.to_dict())
		except Exception:
			logger.exception("notification socket emit failed", extra={"notification_id": notification.id})
		return notification

	async def list_recent(self, user_id: str, limit: Optional[int] = None) -> List[Notification]:
		return await self._repo.list_for_user(str(user_id), limit or settings.notification_page_size)

	async def mark_read(self, user_id: str, notification_id: str) -> Notification:
		notification = await self._repo.mark_read(str(user_id), str(notification_id))
		obs_metrics.inc_notification_read()
		return notification
