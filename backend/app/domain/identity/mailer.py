"""SMTP delivery for account and auth lifecycle emails."""

from __future__ import annotations

import hashlib
import logging
from email.message import EmailMessage
from html import escape

import aiosmtplib

from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Raised when the SMTP server refuses or cannot take a message."""


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


async def deliver(to_email: str, subject: str, body_html: str, *, template: str = "generic") -> None:
    """Send one HTML email, raising MailerError on failure."""
    msg = EmailMessage()
    msg["From"] = settings.smtp_from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body_html, subtype="html")

    # STARTTLS on 587, implicit TLS on 465
    start_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 587
    use_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 465
    try:
        await aiosmtplib.send(
            msg,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            start_tls=start_tls,
            use_tls=use_tls,
        )
    except (aiosmtplib.SMTPException, OSError) as exc:
        obs_metrics.inc_email(template, "failed")
        logger.error("Failed to send %s email to %s: %s", template, mask_email(to_email), str(exc))
        raise MailerError(str(exc) or "Email delivery failed") from exc
    obs_metrics.inc_email(template, "sent")
    logger.info("Email sent to %s", mask_email(to_email))


async def send_account_credentials(
    to_email: str,
    *,
    full_name: str,
    password: str,
    role: str,
) -> None:
    """Tell a provisioned user how to sign in."""
    login_url = f"{settings.public_app_url}/auth"
    subject = "Your Campus Connect account"
    body = f"""
    <html>
        <body style="font-family: Arial, sans-serif;">
            <h1>Welcome to Campus Connect!</h1>
            <p>Hi {escape(full_name)},</p>
            <p>An administrator created a <strong>{escape(role)}</strong> account for you.</p>
            <p>Email: <strong>{escape(to_email)}</strong><br/>Temporary password: <strong>{escape(password)}</strong></p>
            <p><a href="{login_url}">Sign in</a> and change your password right away.</p>
        </body>
    </html>
    """
    await deliver(to_email, subject, body, template="account_credentials")
