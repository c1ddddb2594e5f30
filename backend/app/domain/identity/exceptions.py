"""Identity, session and email-flow errors with their HTTP status."""

from __future__ import annotations


class IdentityServiceError(Exception):
	"""Raised for service-level issues with optional HTTP status mapping."""

	def __init__(self, reason: str, *, status_code: int = 400):
		super().__init__(reason)
		self.reason = reason
		self.status_code = status_code


class NotAuthenticated(IdentityServiceError):
	def __init__(self, reason: str = "invalid_token") -> None:
		super().__init__(reason, status_code=401)


class AuthorityRequired(IdentityServiceError):
	def __init__(self, reason: str) -> None:
		super().__init__(reason, status_code=403)


class ProvisioningInvalid(IdentityServiceError):
	def __init__(self, reason: str) -> None:
		super().__init__(reason, status_code=400)


class AccountConflict(IdentityServiceError):
	def __init__(self, reason: str = "A user with this email address has already been registered") -> None:
		super().__init__(reason, status_code=400)


class HookUnauthorized(IdentityServiceError):
	def __init__(self) -> None:
		super().__init__("invalid_hook_secret", status_code=401)


class EmailDeliveryFailed(IdentityServiceError):
	def __init__(self, reason: str) -> None:
		super().__init__(reason, status_code=500)


class ProfileCreationFailed(IdentityServiceError):
	def __init__(self, reason: str = "Failed to create user profile") -> None:
		super().__init__(reason, status_code=500)
