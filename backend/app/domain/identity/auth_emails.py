"""Auth lifecycle email hook (signup, recovery, email change).

The identity provider posts ``{user, email_data}`` and expects ``{}`` back on
success. The template is picked from ``email_action_type``.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from html import escape
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from app.domain.identity import mailer
from app.domain.identity.exceptions import EmailDeliveryFailed, HookUnauthorized, ProvisioningInvalid
from app.settings import settings

logger = logging.getLogger(__name__)

_BUTTON_STYLE = (
	"background-color: #4F46E5; color: white; padding: 14px 28px; text-decoration: none; "
	"border-radius: 8px; font-weight: bold; display: inline-block;"
)


@dataclass(slots=True, frozen=True)
class RenderedEmail:
	template: str
	subject: str
	html: str


def verify_hook_secret(provided: Optional[str]) -> None:
	expected = settings.auth_hook_secret
	if not expected:
		return
	if not provided or not hmac.compare_digest(provided, expected):
		raise HookUnauthorized()


def confirmation_link(token_hash: Optional[str], action_type: Optional[str], redirect_to: Optional[str]) -> str:
	base = settings.auth_base_url.rstrip("/")
	query = urlencode({"token": token_hash or "", "type": action_type or "", "redirect_to": redirect_to or ""})
	return f"{base}/auth/v1/verify?{query}"


def _button(link: str, label: str) -> str:
	return f"""
	<div style="text-align: center; margin: 30px 0;">
		<a href="{escape(link)}" style="{_BUTTON_STYLE}">{label}</a>
	</div>
	"""


def render(action_type: Optional[str], name: str, link: str) -> RenderedEmail:
	greeting = f'<p style="color: #666; font-size: 16px;">Hi {escape(name)},</p>'
	if action_type in ("signup", "email"):
		return RenderedEmail(
			template="signup",
			subject="Welcome to Campus Connect - Confirm Your Email",
			html=f"""
			<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
				<h1 style="color: #333; text-align: center;">Welcome to Campus Connect!</h1>
				{greeting}
				<p style="color: #666; font-size: 16px;">Thanks for signing up! Please confirm your email address by clicking the button below:</p>
				{_button(link, "Confirm Email Address")}
				<p style="color: #999; font-size: 14px;">Or copy and paste this link in your browser:</p>
				<p style="color: #666; font-size: 12px; word-break: break-all;">{escape(link)}</p>
				<p style="color: #999; font-size: 14px; margin-top: 30px; text-align: center;">
					If you didn't sign up for Campus Connect, you can safely ignore this email.
				</p>
			</div>
			""",
		)
	if action_type in ("recovery", "magiclink"):
		return RenderedEmail(
			template="recovery",
			subject="Reset Your Password - Campus Connect",
			html=f"""
			<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
				<h1 style="color: #333; text-align: center;">Password Reset Request</h1>
				{greeting}
				<p style="color: #666; font-size: 16px;">We received a request to reset your password. Click the button below to set a new password:</p>
				{_button(link, "Reset Password")}
				<p style="color: #e74c3c; font-size: 14px;"><strong>This link expires in 1 hour.</strong></p>
				<p style="color: #999; font-size: 14px; margin-top: 30px; text-align: center;">
					If you didn't request a password reset, you can safely ignore this email.
				</p>
			</div>
			""",
		)
	if action_type == "email_change":
		return RenderedEmail(
			template="email_change",
			subject="Confirm Your New Email - Campus Connect",
			html=f"""
			<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
				<h1 style="color: #333; text-align: center;">Email Change Request</h1>
				{greeting}
				<p style="color: #666; font-size: 16px;">Please confirm your new email address by clicking the button below:</p>
				{_button(link, "Confirm New Email")}
			</div>
			""",
		)
	return RenderedEmail(
		template="generic",
		subject="Campus Connect Notification",
		html=f"""
		<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
			<h1 style="color: #333;">Campus Connect</h1>
			<p style="color: #666;">Click the link below to continue:</p>
			<a href="{escape(link)}">{escape(link)}</a>
		</div>
		""",
	)


async def handle_auth_email(payload: Mapping[str, Any]) -> dict:
	user = payload.get("user") or {}
	email = user.get("email")
	if not email:
		logger.error("No user email provided")
		raise ProvisioningInvalid("No user email")

	email_data = payload.get("email_data") or {}
	action_type = email_data.get("email_action_type")
	metadata = user.get("user_metadata") or {}
	name = metadata.get("full_name") or "there"
	link = confirmation_link(email_data.get("token_hash"), action_type, email_data.get("redirect_to"))
	rendered = render(action_type, name, link)

	logger.info("Sending auth email", extra={"template": rendered.template, "action_type": action_type})
	try:
		await mailer.deliver(email, rendered.subject, rendered.html, template=rendered.template)
	except mailer.MailerError as exc:
		raise EmailDeliveryFailed(str(exc)) from exc
	return {}
