"""Connection request mutations for one signed-in user.

Each operation validates locally, makes one gateway call, then refetches the
affected collections and returns a :class:`Feedback`. Gateway errors come back
as an error ``Feedback`` carrying the gateway message; local state is only
replaced by a refetch after a successful call.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

import asyncpg
from redis.exceptions import RedisError

from app.domain.common.feedback import Feedback
from app.domain.connections import audit, policy, resolver
from app.domain.connections.exceptions import ConnectionsError, GatewayUnavailable, OperationInFlight
from app.domain.connections.models import ConnectionRequest, ResolvedStatus
from app.domain.identity.session import SessionContext
from app.domain.notifications import sockets
from app.domain.notifications.models import CONNECTION_ACCEPTED, CONNECTION_REQUEST
from app.domain.notifications.service import NotificationService
from app.domain.profiles.directory import ProfileDirectory
from app.infra import locks
from app.infra.rate_limit import RateLimitExceeded
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class ConnectionService:
	def __init__(
		self,
		session: SessionContext,
		connections_repo,
		profiles_repo,
		notifier: Optional[NotificationService] = None,
	) -> None:
		self.session = session
		self._connections = connections_repo
		self._profiles = profiles_repo
		self._notifier = notifier
		self.directory = ProfileDirectory(session, profiles_repo)
		self.requests: List[ConnectionRequest] = []
		self.loading = False

	# ---- reads -------------------------------------------------------------

	async def refresh_requests(self) -> List[ConnectionRequest]:
		user = self.session.require_user()
		requests = await self._connections.list_requests_for(user.id)
		await self._enrich(requests)
		self.requests = requests
		return requests

	async def refresh_profiles(self, search_term: Optional[str] = None) -> None:
		await self.directory.refresh(search_term)

	async def refresh(self, search_term: Optional[str] = None) -> None:
		"""Reload requests and the directory together."""
		self.loading = True
		try:
			await self.refresh_requests()
			await self.refresh_profiles(search_term)
		finally:
			self.loading = False

	async def _enrich(self, requests: List[ConnectionRequest]) -> None:
		if not requests:
			return
		ids = {r.sender_id for r in requests} | {r.receiver_id for r in requests}
		try:
			profiles = await self._profiles.fetch_profiles(ids)
		except Exception:
			logger.exception("connection request enrichment failed")
			return
		for request in requests:
			sender = profiles.get(request.sender_id)
			receiver = profiles.get(request.receiver_id)
			if sender is not None:
				request.sender_name = sender.full_name
				request.sender_profile_picture = sender.profile_picture_url
			if receiver is not None:
				request.receiver_name = receiver.full_name

	def status_for(self, target_id: str) -> ResolvedStatus:
		user = self.session.require_user()
		return resolver.resolve_status(self.requests, user.id, target_id)

	@property
	def pending_requests(self) -> List[ConnectionRequest]:
		user_id = self.session.user_id
		if user_id is None:
			return []
		return resolver.pending_received(self.requests, user_id)

	def _busy_key(self, operation: str, key: str) -> str:
		return f"busy:{self.session.require_user().id}:{operation}:{key}"

	async def is_busy(self, operation: str, key: str) -> bool:
		return await locks.held(self._busy_key(operation, key))

	# ---- mutations ---------------------------------------------------------

	def _unavailable(self, operation: str, exc: Exception) -> Feedback:
		logger.warning("connection gateway call failed", extra={"operation": operation, "error": str(exc)})
		return Feedback.failure(str(exc) or GatewayUnavailable.message, reason=GatewayUnavailable.reason)

	async def _run(self, operation: str, key: str, action: Callable[[], Awaitable[Feedback]]) -> Feedback:
		"""Run ``action`` under a per-user busy flag shared across workers."""
		busy_key = self._busy_key(operation, key)
		try:
			acquired = await locks.acquire(busy_key, settings.busy_flag_ttl_seconds)
		except RedisError as exc:
			feedback = self._unavailable(operation, exc)
			obs_metrics.inc_connection_mutation(operation, GatewayUnavailable.reason)
			return feedback
		if not acquired:
			obs_metrics.inc_connection_mutation(operation, OperationInFlight.reason)
			return Feedback.failure(OperationInFlight.message, reason=OperationInFlight.reason)
		try:
			feedback = await action()
		except (ConnectionsError, RateLimitExceeded) as exc:
			feedback = Feedback.failure(str(exc), reason=getattr(exc, "reason", "error"))
		except (asyncpg.PostgresError, RedisError, OSError) as exc:
			feedback = self._unavailable(operation, exc)
		finally:
			try:
				await locks.release(busy_key)
			except RedisError:
				# the flag expires on its own
				logger.warning("busy flag release failed", extra={"operation": operation})
		obs_metrics.inc_connection_mutation(operation, "ok" if feedback.ok else feedback.reason or "error")
		return feedback

	async def _refetch(self, *, profiles: bool) -> None:
		try:
			await self.refresh_requests()
			if profiles:
				await self.refresh_profiles()
		except Exception:
			logger.exception("refetch after mutation failed")

	async def _side_effects(self, event: str, request: ConnectionRequest, notify: Callable[[], Awaitable[None]] | None = None) -> None:
		payload = {"event": event, **request.to_dict()}
		try:
			await sockets.emit_connection_update(request.sender_id, payload)
			await sockets.emit_connection_update(request.receiver_id, payload)
		except Exception:
			logger.exception("connection socket emit failed", extra={"request_id": request.id})
		try:
			await audit.log_request_event(
				event,
				{"request_id": request.id, "sender_id": request.sender_id, "receiver_id": request.receiver_id},
			)
		except Exception:
			logger.exception("connection audit failed", extra={"request_id": request.id})
		if notify is not None and self._notifier is not None:
			try:
				await notify()
			except Exception:
				logger.exception("connection notification trigger failed", extra={"request_id": request.id})

	def _display_name(self) -> str:
		profile = self.session.profile
		return profile.full_name if profile else "Someone"

	async def send_request(self, receiver_id: str, message: Optional[str] = None) -> Feedback:
		user = self.session.require_user()
		receiver_id = str(receiver_id)

		async def action() -> Feedback:
			policy.guard_not_self(user.id, receiver_id)
			text = policy.normalize_message(message)
			await policy.enforce_request_limits(user.id)
			request = await self._connections.insert_request(user.id, receiver_id, text)

			async def notify() -> None:
				await self._notifier.notify_user(
					receiver_id,
					type=CONNECTION_REQUEST,
					title="New connection request",
					description=f"{self._display_name()} wants to connect with you",
					action_type=CONNECTION_REQUEST,
					action_id=request.id,
					created_by=user.id,
				)

			await self._side_effects("sent", request, notify)
			await self._refetch(profiles=False)
			return Feedback.success("Connection request sent", "Your request has been sent successfully!")

		return await self._run("send", receiver_id, action)

	async def cancel_request(self, request_id: str) -> Feedback:
		user = self.session.require_user()

		async def action() -> Feedback:
			request = await self._connections.delete_request(str(request_id), user.id)
			await self._side_effects("cancelled", request)
			await self._refetch(profiles=False)
			return Feedback.success("Request cancelled", "Your connection request has been cancelled.")

		return await self._run("cancel", str(request_id), action)

	async def accept_request(self, request_id: str) -> Feedback:
		user = self.session.require_user()

		async def action() -> Feedback:
			request = await self._connections.accept_request(str(request_id), user.id)

			async def notify() -> None:
				await self._notifier.notify_user(
					request.sender_id,
					type=CONNECTION_ACCEPTED,
					title="Connection accepted",
					description=f"{self._display_name()} accepted your connection request",
					created_by=user.id,
				)

			await self._side_effects("accepted", request, notify)
			await self._refetch(profiles=True)
			return Feedback.success("Connection accepted", "You are now connected!")

		return await self._run("respond", str(request_id), action)

	async def decline_request(self, request_id: str) -> Feedback:
		user = self.session.require_user()

		async def action() -> Feedback:
			request = await self._connections.reject_request(str(request_id), user.id)
			await self._side_effects("declined", request)
			await self._refetch(profiles=True)
			return Feedback.success("Connection declined", "Request has been declined.")

		return await self._run("respond", str(request_id), action)

	async def respond(self, request_id: str, accept: bool) -> Feedback:
		if accept:
			return await self.accept_request(request_id)
		return await self.decline_request(request_id)

	async def remove_connection(self, target_user_id: str) -> Feedback:
		user = self.session.require_user()
		target_id = str(target_user_id)

		async def action() -> Feedback:
			await self._connections.delete_connection(user.id, target_id)
			await self._connections.delete_requests_between(user.id, target_id)
			# two independent calls; a failure leaves the counter one too high
			for uid in (user.id, target_id):
				try:
					await self._connections.decrement_connections_count(uid)
				except Exception:
					obs_metrics.inc_counter_drift()
					logger.exception("connections_count decrement failed", extra={"target_user_id": uid})
			try:
				await sockets.emit_connection_update(target_id, {"event": "removed", "user_id": user.id})
			except Exception:
				logger.exception("connection socket emit failed", extra={"target_user_id": target_id})
			await self._refetch(profiles=True)
			return Feedback.success("Connection removed", "You are no longer connected.")

		return await self._run("remove", target_id, action)

	async def send_mentor_request(self, mentor_id: str) -> Feedback:
		user = self.session.require_user()
		mentor_id = str(mentor_id)

		async def action() -> Feedback:
			policy.guard_not_self(user.id, mentor_id)
			await self._connections.insert_mentoring_request(mentor_id, user.id)
			return Feedback.success("Mentor request sent", "Your mentorship request has been sent!")

		return await self._run("mentor", mentor_id, action)

	def snapshot(self) -> dict:
		return {
			"requests": [r.to_dict() for r in self.requests],
			"pending": [r.to_dict() for r in self.pending_requests],
			"loading": self.loading,
		}
