"""Payload shapes posted by the identity provider's email hook."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class HookUser(BaseModel):
	model_config = ConfigDict(extra="allow")

	email: Optional[str] = None
	user_metadata: Dict[str, Any] = Field(default_factory=dict)


class HookEmailData(BaseModel):
	model_config = ConfigDict(extra="allow")

	token: Optional[str] = None
	token_hash: Optional[str] = None
	redirect_to: Optional[str] = None
	email_action_type: Optional[str] = None


class AuthEmailHookPayload(BaseModel):
	user: Optional[HookUser] = None
	email_data: Optional[HookEmailData] = None
