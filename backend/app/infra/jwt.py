"""Access tokens for the API and the notifications socket.

Tokens are HS256 signed with ``settings.secret_key``. Only ``sub`` is
required beyond the registered claims; ``roles``, ``institution_id`` and
``email`` are optional and read by ``app.infra.auth``.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from app.settings import settings

ALGORITHM = "HS256"
ISSUER = "campus-connect-api"
AUDIENCE = "campus-connect-fe"
REQUIRED_CLAIMS = ("exp", "iat", "iss", "aud", "sub")
CLOCK_SKEW_SECONDS = 5


def encode_access(claims: Dict[str, Any], *, ttl_seconds: int = 3600) -> str:
	issued_at = int(time.time())
	token_claims: Dict[str, Any] = {
		"iss": ISSUER,
		"aud": AUDIENCE,
		"iat": issued_at,
		"exp": issued_at + ttl_seconds,
		**claims,
	}
	return jwt.encode(token_claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> Dict[str, Any]:
	"""Return the verified claims; any failure raises ``jwt.InvalidTokenError``."""
	claims = jwt.decode(
		token,
		settings.secret_key,
		algorithms=[ALGORITHM],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=CLOCK_SKEW_SECONDS,
		options={"require": list(REQUIRED_CLAIMS)},
	)
	# an empty subject passes the "require" check
	if not str(claims.get("sub") or "").strip():
		raise InvalidTokenError("missing_claim:sub")
	return claims
