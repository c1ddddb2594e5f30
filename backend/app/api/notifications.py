"""REST API surface for the notification bell."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.connections import map_feedback
from app.api.deps import get_notification_feed
from app.domain.connections.schemas import RespondPayload
from app.domain.notifications.feed import NotificationFeed
from app.domain.notifications.repo import NotificationNotFound

router = APIRouter(prefix="/notifications")


@router.get("")
async def list_notifications(feed: NotificationFeed = Depends(get_notification_feed)) -> dict:
	await feed.refresh()
	return feed.snapshot()


@router.post("/{notification_id}/read")
async def mark_read(notification_id: UUID, feed: NotificationFeed = Depends(get_notification_feed)) -> dict:
	try:
		notification = await feed.mark_as_read(str(notification_id))
	except NotificationNotFound:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="not_found") from None
	return notification.to_dict()


@router.post("/{notification_id}/respond")
async def respond(
	notification_id: UUID,
	payload: RespondPayload,
	feed: NotificationFeed = Depends(get_notification_feed),
) -> dict:
	try:
		feedback = await feed.respond(str(notification_id), payload.accept)
	except NotificationNotFound:
		raise HTTPException(status.HTTP_404_NOT_FOUND, detail="not_found") from None
	if not feedback.ok:
		raise map_feedback(feedback)
	await feed.refresh()
	return {"feedback": feedback.to_dict(), **feed.snapshot()}
