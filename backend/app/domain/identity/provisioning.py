"""Authority-driven account provisioning.

An authority creates an account for someone at their institution: the account
is confirmed up front, the profile inherits the caller's institution, and the
new user receives their credentials by email. Everything after the account and
profile exist is best effort.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from app.domain.identity import mailer
from app.domain.identity.exceptions import AuthorityRequired, ProfileCreationFailed, ProvisioningInvalid
from app.domain.profiles.models import OPTIONAL_PROFILE_FIELDS, ROLE_VALUES, Role
from app.infra.auth import AuthenticatedUser
from app.infra.password import hash_password
from app.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LEN = 6
REQUIRED_FIELDS = ("email", "password", "full_name", "role", "department")


def _text(value: Any) -> Optional[str]:
	if value is None:
		return None
	text = str(value).strip()
	return text or None


def _int_or_none(value: Any) -> Optional[int]:
	try:
		return int(str(value).strip())
	except (TypeError, ValueError):
		return None


@dataclass(slots=True)
class ProvisionRequest:
	email: str
	password: str
	full_name: str
	role: str
	department: str
	year_of_study: Optional[int] = None
	institution_roll_number: Optional[str] = None
	phone_number: Optional[str] = None
	course: Optional[str] = None
	section: Optional[str] = None
	branch: Optional[str] = None

	@classmethod
	def from_payload(cls, payload: Mapping[str, Any]) -> "ProvisionRequest":
		"""Validate a raw body and build the request."""
		if any(not payload.get(field) for field in REQUIRED_FIELDS):
			raise ProvisioningInvalid("Missing required fields: " + ", ".join(REQUIRED_FIELDS))
		email = str(payload["email"]).strip()
		if not EMAIL_REGEX.match(email):
			raise ProvisioningInvalid("Invalid email format")
		password = str(payload["password"])
		if len(password) < PASSWORD_MIN_LEN:
			raise ProvisioningInvalid(f"Password must be at least {PASSWORD_MIN_LEN} characters")
		role = str(payload["role"]).strip()
		if role not in ROLE_VALUES:
			raise ProvisioningInvalid("Invalid role. Must be one of: " + ", ".join(ROLE_VALUES))
		return cls(
			email=email,
			password=password,
			full_name=str(payload["full_name"]).strip(),
			role=role,
			department=str(payload["department"]).strip(),
			year_of_study=_int_or_none(payload.get("year_of_study")),
			institution_roll_number=_text(payload.get("institution_roll_number")),
			phone_number=_text(payload.get("phone_number")),
			course=_text(payload.get("course") or payload.get("Course")),
			section=_text(payload.get("section")),
			branch=_text(payload.get("branch")),
		)

	def optional_fields(self) -> Dict[str, str]:
		return {name: getattr(self, name) for name in OPTIONAL_PROFILE_FIELDS if getattr(self, name)}


class AccountProvisioner:
	def __init__(self, accounts_repo, profiles_repo) -> None:
		self._accounts = accounts_repo
		self._profiles = profiles_repo

	async def create_user(self, caller: AuthenticatedUser, payload: Mapping[str, Any]) -> dict:
		caller_profile = await self._profiles.fetch_profile(caller.id)
		if caller_profile is None:
			obs_metrics.inc_account_provisioned("forbidden")
			raise AuthorityRequired("Could not verify user role")
		if caller_profile.role is not Role.AUTHORITY:
			obs_metrics.inc_account_provisioned("forbidden")
			raise AuthorityRequired("Only authorities can create users")

		try:
			request = ProvisionRequest.from_payload(payload)
		except ProvisioningInvalid:
			obs_metrics.inc_account_provisioned("invalid")
			raise

		logger.info("Creating user", extra={"role": request.role, "actor_id": caller.id})
		account = await self._accounts.create_account(
			email=request.email,
			password_hash=hash_password(request.password),
			email_confirmed=True,
			metadata={
				"full_name": request.full_name,
				"role": request.role,
				"institution_id": caller_profile.institution_id,
				"institution_roll_number": request.institution_roll_number,
				"department": request.department,
				"year_of_study": request.year_of_study,
			},
		)
		try:
			await self._profiles.insert_profile(
				user_id=account["id"],
				full_name=request.full_name,
				email=request.email,
				role=request.role,
				department=request.department,
				institution_id=caller_profile.institution_id,
				institution_roll_number=request.institution_roll_number,
				year_of_study=request.year_of_study,
			)
		except Exception as exc:
			obs_metrics.inc_account_provisioned("failed")
			logger.exception("Profile creation failed", extra={"target_user_id": account["id"]})
			await self._discard_account(account["id"])
			raise ProfileCreationFailed() from exc
		obs_metrics.inc_account_provisioned("created")

		extra = request.optional_fields()
		if extra:
			try:
				await self._profiles.update_optional_fields(account["id"], extra)
			except Exception:
				logger.exception("Profile update error", extra={"target_user_id": account["id"]})

		try:
			await self._accounts.log_authority_action(
				action_type="create_user",
				actor_id=caller.id,
				target_user_id=account["id"],
				details={
					"user_name": request.full_name,
					"user_email": request.email,
					"user_role": request.role,
					"created_by": caller.id,
				},
			)
		except Exception:
			logger.exception("Authority action log failed", extra={"target_user_id": account["id"]})

		try:
			await mailer.send_account_credentials(
				request.email,
				full_name=request.full_name,
				password=request.password,
				role=request.role,
			)
		except mailer.MailerError:
			logger.warning("Credentials email not delivered", extra={"target_user_id": account["id"]})

		return {"success": True, "user": {"id": account["id"], "email": account["email"]}}

	async def _discard_account(self, account_id: str) -> None:
		"""Remove an account whose profile could not be created so the email can be reused."""
		try:
			await self._accounts.delete_account(account_id)
		except Exception:
			logger.exception("Orphan account cleanup failed", extra={"target_user_id": account_id})
