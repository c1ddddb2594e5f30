"""REST API surface for connection requests and the profile directory."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_connection_service
from app.domain.common.feedback import Feedback
from app.domain.connections.schemas import SendRequestPayload
from app.domain.connections.service import ConnectionService

router = APIRouter(prefix="/connections")

_STATUS_BY_REASON = {
	"conflict": status.HTTP_409_CONFLICT,
	"self_request": status.HTTP_409_CONFLICT,
	"in_flight": status.HTTP_409_CONFLICT,
	"not_connected": status.HTTP_409_CONFLICT,
	"forbidden": status.HTTP_403_FORBIDDEN,
	"not_found": status.HTTP_404_NOT_FOUND,
	"gone": status.HTTP_410_GONE,
	"per_minute": status.HTTP_429_TOO_MANY_REQUESTS,
	"per_day": status.HTTP_429_TOO_MANY_REQUESTS,
	"unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def map_feedback(feedback: Feedback) -> HTTPException:
	code = _STATUS_BY_REASON.get(feedback.reason or "", status.HTTP_400_BAD_REQUEST)
	return HTTPException(code, detail=feedback.to_dict())


def _result(feedback: Feedback, service: ConnectionService, **extra) -> dict:
	if not feedback.ok:
		raise map_feedback(feedback)
	return {"feedback": feedback.to_dict(), **service.snapshot(), **extra}


@router.get("/requests")
async def list_requests(service: ConnectionService = Depends(get_connection_service)) -> dict:
	await service.refresh_requests()
	return service.snapshot()


@router.get("/pending")
async def list_pending(service: ConnectionService = Depends(get_connection_service)) -> list[dict]:
	await service.refresh_requests()
	return [r.to_dict() for r in service.pending_requests]


@router.get("/status/{user_id}")
async def connection_status(user_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	await service.refresh_requests()
	return service.status_for(str(user_id)).to_dict()


@router.get("/directory")
async def directory(
	q: Optional[str] = Query(default=None, max_length=120),
	service: ConnectionService = Depends(get_connection_service),
) -> dict:
	await service.refresh_profiles(q)
	return service.directory.to_dict()


@router.post("/requests")
async def send_request(
	payload: SendRequestPayload,
	service: ConnectionService = Depends(get_connection_service),
) -> dict:
	receiver_id = str(payload.receiver_id)
	feedback = await service.send_request(receiver_id, payload.message)
	return _result(feedback, service, status=service.status_for(receiver_id).to_dict())


@router.post("/requests/{request_id}/cancel")
async def cancel_request(request_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	return _result(await service.cancel_request(str(request_id)), service)


@router.post("/requests/{request_id}/accept")
async def accept_request(request_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	return _result(await service.accept_request(str(request_id)), service)


@router.post("/requests/{request_id}/decline")
async def decline_request(request_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	return _result(await service.decline_request(str(request_id)), service)


@router.delete("/{user_id}")
async def remove_connection(user_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	target_id = str(user_id)
	feedback = await service.remove_connection(target_id)
	return _result(feedback, service, status=service.status_for(target_id).to_dict())


@router.post("/mentors/{mentor_id}")
async def send_mentor_request(mentor_id: UUID, service: ConnectionService = Depends(get_connection_service)) -> dict:
	return _result(await service.send_mentor_request(str(mentor_id)), service)
