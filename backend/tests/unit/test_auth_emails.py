import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

from app.domain.identity import auth_emails, mailer
from app.domain.identity.exceptions import EmailDeliveryFailed, HookUnauthorized, ProvisioningInvalid
from app.settings import settings


def _payload(action_type="signup", email="pat@campus.example", name="Pat"):
    return {
        "user": {"email": email, "user_metadata": {"full_name": name} if name else {}},
        "email_data": {"token_hash": "abc123", "email_action_type": action_type, "redirect_to": "http://app/done"},
    }


@pytest.mark.parametrize(
    "action_type, template, subject_part",
    [
        ("signup", "signup", "Confirm Your Email"),
        ("email", "signup", "Confirm Your Email"),
        ("recovery", "recovery", "Reset Your Password"),
        ("magiclink", "recovery", "Reset Your Password"),
        ("email_change", "email_change", "Confirm Your New Email"),
        ("reauthentication", "generic", "Campus Connect Notification"),
        (None, "generic", "Campus Connect Notification"),
    ],
)
def test_render_picks_template(action_type, template, subject_part):
    rendered = auth_emails.render(action_type, "Pat", "http://link")
    assert rendered.template == template
    assert subject_part in rendered.subject


def test_recovery_mentions_expiry():
    assert "expires in 1 hour" in auth_emails.render("recovery", "Pat", "http://link").html


def test_confirmation_link_shape(monkeypatch):
    monkeypatch.setattr(settings, "auth_base_url", "https://auth.example/")
    link = auth_emails.confirmation_link("abc123", "signup", "http://app/done")
    assert link == "https://auth.example/auth/v1/verify?token=abc123&type=signup&redirect_to=http%3A%2F%2Fapp%2Fdone"


def test_confirmation_link_tolerates_missing_parts(monkeypatch):
    monkeypatch.setattr(settings, "auth_base_url", "https://auth.example")
    assert auth_emails.confirmation_link(None, None, None) == "https://auth.example/auth/v1/verify?token=&type=&redirect_to="


def test_confirmation_link_keeps_redirect_query_inside_one_parameter(monkeypatch):
    monkeypatch.setattr(settings, "auth_base_url", "https://auth.example")
    link = auth_emails.confirmation_link("a+b", "recovery", "http://app/reset?next=/home&tab=1")

    query = parse_qs(urlsplit(link).query)
    assert query == {"token": ["a+b"], "type": ["recovery"], "redirect_to": ["http://app/reset?next=/home&tab=1"]}
    assert "tab=1" not in link


@pytest.mark.asyncio
async def test_handle_auth_email_sends_and_returns_empty_object():
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        result = await auth_emails.handle_auth_email(_payload())

    assert result == {}
    to_email, subject, body = mock_deliver.call_args.args
    assert to_email == "pat@campus.example"
    assert "Hi Pat" in body
    assert "token=abc123" in body
    assert mock_deliver.call_args.kwargs["template"] == "signup"


@pytest.mark.asyncio
async def test_handle_auth_email_defaults_greeting():
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        await auth_emails.handle_auth_email(_payload(name=None))
    assert "Hi there" in mock_deliver.call_args.args[2]


@pytest.mark.asyncio
async def test_handle_auth_email_requires_email():
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        with pytest.raises(ProvisioningInvalid) as exc_info:
            await auth_emails.handle_auth_email(_payload(email=None))
    assert exc_info.value.reason == "No user email"
    mock_deliver.assert_not_called()


@pytest.mark.asyncio
async def test_handle_auth_email_surfaces_delivery_failure():
    with patch(
        "app.domain.identity.auth_emails.mailer.deliver",
        new_callable=AsyncMock,
        side_effect=mailer.MailerError("connection refused"),
    ):
        with pytest.raises(EmailDeliveryFailed) as exc_info:
            await auth_emails.handle_auth_email(_payload())
    assert exc_info.value.status_code == 500
    assert exc_info.value.reason == "connection refused"


def test_verify_hook_secret(monkeypatch):
    monkeypatch.setattr(settings, "auth_hook_secret", None)
    auth_emails.verify_hook_secret(None)

    monkeypatch.setattr(settings, "auth_hook_secret", "hook-secret")
    auth_emails.verify_hook_secret("hook-secret")
    with pytest.raises(HookUnauthorized):
        auth_emails.verify_hook_secret("wrong")
    with pytest.raises(HookUnauthorized):
        auth_emails.verify_hook_secret(None)
