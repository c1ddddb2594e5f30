"""Webhook called by the identity provider to send auth lifecycle emails."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Header, HTTPException

from app.domain.identity import auth_emails
from app.domain.identity.exceptions import IdentityServiceError
from app.domain.identity.schemas import AuthEmailHookPayload

router = APIRouter(prefix="/hooks")


@router.post("/auth-email")
async def send_auth_email(
	payload: AuthEmailHookPayload,
	x_hook_secret: Optional[str] = Header(default=None, alias="X-Hook-Secret"),
) -> dict:
	try:
		auth_emails.verify_hook_secret(x_hook_secret)
		return await auth_emails.handle_auth_email(payload.model_dump())
	except IdentityServiceError as exc:
		raise HTTPException(status_code=exc.status_code, detail=exc.reason) from None
