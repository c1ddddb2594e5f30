"""Derive the relationship status between two users from request rows."""

from __future__ import annotations

from typing import Iterable, List

from app.domain.connections.models import ConnectionRequest, PairStatus, RequestStatus, ResolvedStatus

NO_RELATION = ResolvedStatus(PairStatus.NONE)


def resolve_status(requests: Iterable[ConnectionRequest], current_user_id: str, target_id: str) -> ResolvedStatus:
	"""Return the status of ``current_user_id`` towards ``target_id``.

	The first request for the pair that is not rejected decides. Rejected rows
	never block, so a declined pair resolves to ``none``.
	"""
	me, other = str(current_user_id), str(target_id)
	for request in requests:
		if request.status is RequestStatus.REJECTED or not request.involves(me, other):
			continue
		if request.status is RequestStatus.ACCEPTED:
			return ResolvedStatus(PairStatus.CONNECTED, request.id)
		if request.sender_id == me:
			return ResolvedStatus(PairStatus.SENT, request.id)
		return ResolvedStatus(PairStatus.RECEIVED, request.id)
	return NO_RELATION


def pending_received(requests: Iterable[ConnectionRequest], user_id: str) -> List[ConnectionRequest]:
	return [r for r in requests if r.receiver_id == str(user_id) and r.status is RequestStatus.PENDING]
