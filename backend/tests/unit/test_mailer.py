import aiosmtplib
import pytest
from unittest.mock import AsyncMock, patch

from app.domain.identity import mailer
from app.settings import settings


@pytest.mark.asyncio
async def test_deliver_uses_starttls_on_587(monkeypatch):
    monkeypatch.setattr(settings, "smtp_port", 587)
    monkeypatch.setattr(settings, "smtp_tls", True)
    with patch("app.domain.identity.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
        await mailer.deliver("pat@campus.example", "Hello", "<p>hi</p>", template="signup")

    message = mock_send.call_args.args[0]
    kwargs = mock_send.call_args.kwargs
    assert message["To"] == "pat@campus.example"
    assert message["Subject"] == "Hello"
    assert kwargs["start_tls"] is True
    assert kwargs["use_tls"] is False


@pytest.mark.asyncio
async def test_deliver_uses_implicit_tls_on_465(monkeypatch):
    monkeypatch.setattr(settings, "smtp_port", 465)
    monkeypatch.setattr(settings, "smtp_tls", True)
    with patch("app.domain.identity.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
        await mailer.deliver("pat@campus.example", "Hello", "<p>hi</p>")

    assert mock_send.call_args.kwargs["use_tls"] is True
    assert mock_send.call_args.kwargs["start_tls"] is False


@pytest.mark.asyncio
async def test_deliver_wraps_smtp_failures():
    with patch(
        "app.domain.identity.mailer.aiosmtplib.send",
        new_callable=AsyncMock,
        side_effect=aiosmtplib.SMTPException("mailbox unavailable"),
    ):
        with pytest.raises(mailer.MailerError) as exc_info:
            await mailer.deliver("pat@campus.example", "Hello", "<p>hi</p>")
    assert "mailbox unavailable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_credentials_email_escapes_user_input():
    with patch("app.domain.identity.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        await mailer.send_account_credentials(
            "pat@campus.example", full_name="<Pat>", password="s3cret!", role="mentor"
        )

    to_email, subject, body = mock_deliver.call_args.args
    assert to_email == "pat@campus.example"
    assert "&lt;Pat&gt;" in body
    assert "s3cret!" in body
    assert mock_deliver.call_args.kwargs["template"] == "account_credentials"


def test_mask_email_is_stable_and_case_insensitive():
    assert mailer.mask_email("Pat@Campus.example") == mailer.mask_email("pat@campus.example")
    assert "@" not in mailer.mask_email("pat@campus.example")
