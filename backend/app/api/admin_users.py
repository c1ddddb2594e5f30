"""Authority endpoint for provisioning accounts."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from app.api.deps import get_provisioner
from app.domain.identity.exceptions import IdentityServiceError
from app.domain.identity.provisioning import AccountProvisioner
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/admin")


@router.post("/users")
async def create_user(
	payload: Dict[str, Any] = Body(...),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	provisioner: AccountProvisioner = Depends(get_provisioner),
) -> dict:
	try:
		return await provisioner.create_user(auth_user, payload)
	except IdentityServiceError as exc:
		raise HTTPException(status_code=exc.status_code, detail=exc.reason) from None
