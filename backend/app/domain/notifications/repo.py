"""Notification persistence (asyncpg and in-memory)."""

from __future__ import annotations

from typing import List, Optional

from app.domain.notifications.models import Notification
from app.infra.change_feed import ChangeFeed, change_feed
from app.infra.memory import MemoryDatabase
from app.infra.postgres import get_pool

TABLE = "notifications"


class NotificationNotFound(LookupError):
	"""Raised when the notification does not exist for the caller."""


class PostgresNotificationRepository:
	def __init__(self, feed: ChangeFeed = change_feed) -> None:
		self._feed = feed

	async def create(
		self,
		*,
		user_id: str,
		type: str,
		title: str,
		description: str,
		action_type: Optional[str] = None,
		action_id: Optional[str] = None,
		created_by: Optional[str] = None,
	) -> Notification:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				INSERT INTO notifications (user_id, type, title, description, action_type, action_id, created_by)
				VALUES ($1, $2, $3, $4, $5, $6, $7)
				RETURNING *
				""",
				user_id,
				type,
				title,
				description,
				action_type,
				action_id,
				created_by,
			)
		notification = Notification.from_record(dict(row))
		await self._feed.publish(TABLE, notification.user_id, {"event": "insert", **notification.to_dict()})
		return notification

	async def list_for_user(self, user_id: str, limit: int) -> List[Notification]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM notifications
				WHERE user_id = $1
				ORDER BY created_at DESC, id DESC
				LIMIT $2
				""",
				user_id,
				limit,
			)
		return [Notification.from_record(dict(row)) for row in rows]

	async def mark_read(self, user_id: str, notification_id: str) -> Notification:
		pool = await get_pool()
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				UPDATE notifications
				SET read = TRUE, updated_at = NOW()
				WHERE id = $1 AND user_id = $2
				RETURNING *
				""",
				notification_id,
				user_id,
			)
		if not row:
			raise NotificationNotFound(notification_id)
		return Notification.from_record(dict(row))


class InMemoryNotificationRepository:
	def __init__(self, db: MemoryDatabase, feed: ChangeFeed = change_feed) -> None:
		self._db = db
		self._feed = feed

	async def create(
		self,
		*,
		user_id: str,
		type: str,
		title: str,
		description: str,
		action_type: Optional[str] = None,
		action_id: Optional[str] = None,
		created_by: Optional[str] = None,
	) -> Notification:
		self._db.check("create_notification")
		async with self._db.lock:
			row = {
				"id": self._db.new_id(),
				"user_id": str(user_id),
				"type": type,
				"title": title,
				"description": description,
				"action_type": action_type,
				"action_id": action_id,
				"created_by": created_by,
				"read": False,
				"created_at": self._db.now(),
			}
			self._db.notifications[row["id"]] = row
			notification = Notification.from_record(dict(row))
		await self._feed.publish(TABLE, notification.user_id, {"event": "insert", **notification.to_dict()})
		return notification

	async def list_for_user(self, user_id: str, limit: int) -> List[Notification]:
		self._db.check("list_notifications")
		async with self._db.lock:
			rows = [dict(row) for row in self._db.notifications.values() if row["user_id"] == str(user_id)]
		rows.sort(key=lambda row: (row["created_at"], row["id"]), reverse=True)
		return [Notification.from_record(row) for row in rows[:limit]]

	async def mark_read(self, user_id: str, notification_id: str) -> Notification:
		self._db.check("mark_read")
		async with self._db.lock:
			row = self._db.notifications.get(str(notification_id))
			if row is None or row["user_id"] != str(user_id):
				raise NotificationNotFound(notification_id)
			row["read"] = True
			return Notification.from_record(dict(row))
