"""Connection request persistence.

``PostgresConnectionRepository`` runs against asyncpg; ``InMemoryConnectionRepository``
mirrors its contract on a :class:`~app.infra.memory.MemoryDatabase`. Both raise
the exceptions from ``app.domain.connections.exceptions`` and publish changed
rows on the change feed for both parties.
"""

from __future__ import annotations

from typing import List, Optional

import asyncpg

from app.domain.connections.exceptions import (
	NotConnected,
	RequestConflict,
	RequestForbidden,
	RequestGone,
	RequestNotFound,
)
from app.domain.connections.models import ConnectionRequest, RequestStatus
from app.infra.change_feed import ChangeFeed, change_feed
from app.infra.memory import MemoryDatabase
from app.infra.postgres import get_pool

TABLE = "connection_requests"


def _check_transition(request: ConnectionRequest, actor_id: str, *, as_sender: bool) -> None:
	owner = request.sender_id if as_sender else request.receiver_id
	if owner != str(actor_id):
		raise RequestForbidden()
	if request.status is not RequestStatus.PENDING:
		raise RequestGone()


async def _publish(feed: ChangeFeed, request: ConnectionRequest, event: str) -> None:
	row = {"event": event, **request.to_dict()}
	await feed.publish(TABLE, request.sender_id, row)
	await feed.publish(TABLE, request.receiver_id, row)


class PostgresConnectionRepository:
	def __init__(self, feed: ChangeFeed = change_feed) -> None:
		self._feed = feed

	async def list_requests_for(self, user_id: str) -> List[ConnectionRequest]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM connection_requests
				WHERE sender_id = $1 OR receiver_id = $1
				ORDER BY created_at DESC, id DESC
				""",
				user_id,
			)
		return [ConnectionRequest.from_record(dict(row)) for row in rows]

	async def insert_request(self, sender_id: str, receiver_id: str, message: Optional[str]) -> ConnectionRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					"""
					INSERT INTO connection_requests (sender_id, receiver_id, message)
					VALUES ($1, $2, $3)
					RETURNING *
					""",
					sender_id,
					receiver_id,
					message,
				)
			except asyncpg.UniqueViolationError:
				raise RequestConflict() from None
			except asyncpg.ForeignKeyViolationError:
				raise RequestNotFound("User not found") from None
		request = ConnectionRequest.from_record(dict(row))
		await _publish(self._feed, request, "insert")
		return request

	async def delete_request(self, request_id: str, sender_id: str) -> ConnectionRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow("SELECT * FROM connection_requests WHERE id = $1 FOR UPDATE", request_id)
				if not row:
					raise RequestNotFound()
				request = ConnectionRequest.from_record(dict(row))
				_check_transition(request, sender_id, as_sender=True)
				await conn.execute("DELETE FROM connection_requests WHERE id = $1", request_id)
		await _publish(self._feed, request, "delete")
		return request

	async def accept_request(self, request_id: str, receiver_id: str) -> ConnectionRequest:
		"""Accept, create the edge and bump both counters in one transaction."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow("SELECT * FROM connection_requests WHERE id = $1 FOR UPDATE", request_id)
				if not row:
					raise RequestNotFound()
				_check_transition(ConnectionRequest.from_record(dict(row)), receiver_id, as_sender=False)
				updated = await conn.fetchrow(
					"""
					UPDATE connection_requests
					SET status = 'accepted', updated_at = NOW()
					WHERE id = $1
					RETURNING *
					""",
					request_id,
				)
				inserted = await conn.fetchval(
					"""
					INSERT INTO connections (user1_id, user2_id)
					VALUES ($1, $2)
					ON CONFLICT DO NOTHING
					RETURNING id
					""",
					updated["sender_id"],
					updated["receiver_id"],
				)
				if inserted is not None:
					await conn.execute(
						"""
						UPDATE profiles
						SET connections_count = connections_count + 1, updated_at = NOW()
						WHERE user_id = ANY($1::uuid[])
						""",
						[updated["sender_id"], updated["receiver_id"]],
					)
		request = ConnectionRequest.from_record(dict(updated))
		await _publish(self._feed, request, "update")
		return request

	async def reject_request(self, request_id: str, receiver_id: str) -> ConnectionRequest:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow("SELECT * FROM connection_requests WHERE id = $1 FOR UPDATE", request_id)
				if not row:
					raise RequestNotFound()
				_check_transition(ConnectionRequest.from_record(dict(row)), receiver_id, as_sender=False)
				updated = await conn.fetchrow(
					"""
					UPDATE connection_requests
					SET status = 'rejected', updated_at = NOW()
					WHERE id = $1
					RETURNING *
					""",
					request_id,
				)
		request = ConnectionRequest.from_record(dict(updated))
		await _publish(self._feed, request, "update")
		return request

	async def delete_connection(self, user_id: str, target_id: str) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				DELETE FROM connections
				WHERE (user1_id = $1 AND user2_id = $2) OR (user1_id = $2 AND user2_id = $1)
				""",
				user_id,
				target_id,
			)
		if status.endswith(" 0"):
			raise NotConnected()

	async def delete_requests_between(self, user_id: str, target_id: str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				DELETE FROM connection_requests
				WHERE (sender_id = $1 AND receiver_id = $2) OR (sender_id = $2 AND receiver_id = $1)
				RETURNING *
				""",
				user_id,
				target_id,
			)
		for row in rows:
			await _publish(self._feed, ConnectionRequest.from_record(dict(row)), "delete")
		return len(rows)

	async def decrement_connections_count(self, user_id: str) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				UPDATE profiles
				SET connections_count = GREATEST(connections_count - 1, 0), updated_at = NOW()
				WHERE user_id = $1
				""",
				user_id,
			)

	async def insert_mentoring_request(self, mentor_id: str, mentee_id: str) -> dict:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				row = await conn.fetchrow(
					"""
					INSERT INTO mentoring_relationships (mentor_id, mentee_id, status)
					VALUES ($1, $2, 'pending')
					RETURNING *
					""",
					mentor_id,
					mentee_id,
				)
			except asyncpg.ForeignKeyViolationError:
				raise RequestNotFound("Mentor not found") from None
		return {key: str(value) if key.endswith("id") else value for key, value in dict(row).items()}


class InMemoryConnectionRepository:
	def __init__(self, db: MemoryDatabase, feed: ChangeFeed = change_feed) -> None:
		self._db = db
		self._feed = feed

	def _open_between(self, user_a: str, user_b: str) -> Optional[dict]:
		for row in self._db.connection_requests.values():
			if row["status"] != RequestStatus.REJECTED.value and {row["sender_id"], row["receiver_id"]} == {user_a, user_b}:
				return row
		return None

	def _locked_request(self, request_id: str) -> dict:
		row = self._db.connection_requests.get(str(request_id))
		if row is None:
			raise RequestNotFound()
		return row

	async def list_requests_for(self, user_id: str) -> List[ConnectionRequest]:
		self._db.check("list_requests_for")
		uid = str(user_id)
		async with self._db.lock:
			rows = [
				dict(row)
				for row in self._db.connection_requests.values()
				if row["sender_id"] == uid or row["receiver_id"] == uid
			]
		rows.sort(key=lambda row: (row["created_at"], row["id"]), reverse=True)
		return [ConnectionRequest.from_record(row) for row in rows]

	async def insert_request(self, sender_id: str, receiver_id: str, message: Optional[str]) -> ConnectionRequest:
		self._db.check("insert_request")
		sender, receiver = str(sender_id), str(receiver_id)
		async with self._db.lock:
			if self._db.profile(sender) is None or self._db.profile(receiver) is None:
				raise RequestNotFound("User not found")
			if self._open_between(sender, receiver) is not None:
				raise RequestConflict()
			now = self._db.now()
			row = {
				"id": self._db.new_id(),
				"sender_id": sender,
				"receiver_id": receiver,
				"status": RequestStatus.PENDING.value,
				"message": message,
				"created_at": now,
				"updated_at": now,
			}
			self._db.connection_requests[row["id"]] = row
			request = ConnectionRequest.from_record(dict(row))
		await _publish(self._feed, request, "insert")
		return request

	async def delete_request(self, request_id: str, sender_id: str) -> ConnectionRequest:
		self._db.check("delete_request")
		async with self._db.lock:
			request = ConnectionRequest.from_record(dict(self._locked_request(request_id)))
			_check_transition(request, sender_id, as_sender=True)
			del self._db.connection_requests[request.id]
		await _publish(self._feed, request, "delete")
		return request

	async def accept_request(self, request_id: str, receiver_id: str) -> ConnectionRequest:
		self._db.check("accept_request")
		async with self._db.lock:
			row = self._locked_request(request_id)
			_check_transition(ConnectionRequest.from_record(dict(row)), receiver_id, as_sender=False)
			now = self._db.now()
			row.update(status=RequestStatus.ACCEPTED.value, updated_at=now)
			pair = {row["sender_id"], row["receiver_id"]}
			if not any({c["user1_id"], c["user2_id"]} == pair for c in self._db.connections.values()):
				edge = {"id": self._db.new_id(), "user1_id": row["sender_id"], "user2_id": row["receiver_id"], "created_at": now}
				self._db.connections[edge["id"]] = edge
				for uid in pair:
					profile = self._db.profile(uid)
					if profile is not None:
						profile["connections_count"] = profile.get("connections_count", 0) + 1
			request = ConnectionRequest.from_record(dict(row))
		await _publish(self._feed, request, "update")
		return request

	async def reject_request(self, request_id: str, receiver_id: str) -> ConnectionRequest:
		self._db.check("reject_request")
		async with self._db.lock:
			row = self._locked_request(request_id)
			_check_transition(ConnectionRequest.from_record(dict(row)), receiver_id, as_sender=False)
			row.update(status=RequestStatus.REJECTED.value, updated_at=self._db.now())
			request = ConnectionRequest.from_record(dict(row))
		await _publish(self._feed, request, "update")
		return request

	async def delete_connection(self, user_id: str, target_id: str) -> None:
		self._db.check("delete_connection")
		pair = {str(user_id), str(target_id)}
		async with self._db.lock:
			edges = [key for key, c in self._db.connections.items() if {c["user1_id"], c["user2_id"]} == pair]
			if not edges:
				raise NotConnected()
			for key in edges:
				del self._db.connections[key]

	async def delete_requests_between(self, user_id: str, target_id: str) -> int:
		self._db.check("delete_requests_between")
		pair = {str(user_id), str(target_id)}
		async with self._db.lock:
			removed = [
				self._db.connection_requests.pop(key)
				for key, row in list(self._db.connection_requests.items())
				if {row["sender_id"], row["receiver_id"]} == pair
			]
		for row in removed:
			await _publish(self._feed, ConnectionRequest.from_record(row), "delete")
		return len(removed)

	async def decrement_connections_count(self, user_id: str) -> None:
		self._db.check("decrement_connections_count")
		async with self._db.lock:
			profile = self._db.profile(user_id)
			if profile is not None:
				profile["connections_count"] = max(profile.get("connections_count", 0) - 1, 0)

	async def insert_mentoring_request(self, mentor_id: str, mentee_id: str) -> dict:
		self._db.check("insert_mentoring_request")
		async with self._db.lock:
			if self._db.profile(mentor_id) is None:
				raise RequestNotFound("Mentor not found")
			row = {
				"id": self._db.new_id(),
				"mentor_id": str(mentor_id),
				"mentee_id": str(mentee_id),
				"status": "pending",
				"created_at": self._db.now(),
			}
			self._db.mentoring_relationships[row["id"]] = row
			return dict(row)

	def connections_between(self, user_a: str, user_b: str) -> int:
		pair = {str(user_a), str(user_b)}
		return sum(1 for c in self._db.connections.values() if {c["user1_id"], c["user2_id"]} == pair)
