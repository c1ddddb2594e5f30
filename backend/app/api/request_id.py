"""Request ID lookup for error responses.

The observability middleware stores the id on ``request.state`` and binds it
into the logging context; either source is accepted here.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from app.obs import logging as obs_logging


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
    rid = getattr(request.state, "request_id", None) if request is not None else None
    return rid or obs_logging.current_request_id() or default
