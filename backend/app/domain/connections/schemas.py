"""Pydantic request bodies for the connections API."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SendRequestPayload(BaseModel):
	receiver_id: UUID = Field(..., description="Profile that should receive the request")
	message: Optional[str] = Field(default=None, description="Optional note; blank notes are dropped")


class RespondPayload(BaseModel):
	accept: bool
