"""Socket.IO namespace pushing notification and connection updates."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import socketio
from fastapi import HTTPException

from app.infra.auth import AuthenticatedUser, verify_access_jwt
from app.obs import metrics as obs_metrics
from app.settings import settings

if TYPE_CHECKING:
	from app.domain.notifications.feed import NotificationFeed

logger = logging.getLogger(__name__)

FeedFactory = Callable[[AuthenticatedUser], Awaitable["NotificationFeed"]]

_namespace: "NotificationsNamespace" | None = None


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


def _authenticate(scope: dict, auth_payload: dict) -> AuthenticatedUser:
	token = auth_payload.get("token")
	if not token:
		bearer = _header(scope, "authorization") or ""
		if bearer.lower().startswith("bearer "):
			token = bearer[7:].strip()
	if token:
		try:
			return verify_access_jwt(token)
		except HTTPException:
			raise ConnectionRefusedError("invalid token") from None
	user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
	if settings.is_dev() and user_id:
		return AuthenticatedUser(id=user_id)
	raise ConnectionRefusedError("missing credentials")


class NotificationsNamespace(socketio.AsyncNamespace):
	"""Namespace that keeps each client in their personal room.

	With a ``feed_factory`` every connection also gets its own notification
	feed; pushes on the change feed refetch it and the snapshot is emitted to
	that client as ``notifications:snapshot``.
	"""

	def __init__(self, feed_factory: Optional[FeedFactory] = None) -> None:
		super().__init__("/notifications")
		self._sessions: dict[str, AuthenticatedUser] = {}
		self._feed_factory = feed_factory
		self._feeds: dict[str, "NotificationFeed"] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		scope = environ.get("asgi.scope", environ)
		try:
			user = _authenticate(scope, auth or {})
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("notifications:ack", {"ok": True}, room=sid)
		if self._feed_factory is not None:
			await self._open_feed(sid, user)

	async def _open_feed(self, sid: str, user: AuthenticatedUser) -> None:
		try:
			feed = await self._feed_factory(user)
		except Exception:
			logger.exception("notification feed unavailable for socket", extra={"user_id": user.id})
			return

		async def push(snapshot: dict) -> None:
			obs_metrics.socket_event(self.namespace, "notifications:snapshot")
			await self.emit("notifications:snapshot", snapshot, room=sid)

		feed.on_update(push)
		feed.start()
		try:
			await feed.refresh()
		except Exception:
			logger.exception("initial notification refresh failed", extra={"user_id": user.id})
			await feed.close()
			return
		self._feeds[sid] = feed
		await push(feed.snapshot())

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		feed = self._feeds.pop(sid, None)
		if feed is not None:
			await feed.close()
		user = self._sessions.pop(sid, None)
		if user:
			await self.leave_room(sid, self.user_room(user.id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(ns: NotificationsNamespace | None) -> None:
	global _namespace
	_namespace = ns


async def emit_notification_new(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "notification:new")
	await _namespace.emit("notification:new", payload, room=NotificationsNamespace.user_room(user_id))


async def emit_connection_update(user_id: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, "connection:update")
	await _namespace.emit("connection:update", payload, room=NotificationsNamespace.user_room(user_id))
