import pytest
from unittest.mock import AsyncMock, patch

from app.domain.identity import mailer
from app.settings import settings


def _hook(email="pat@campus.example", action="recovery"):
    return {
        "user": {"email": email, "user_metadata": {"full_name": "Pat"}},
        "email_data": {"token_hash": "tok", "email_action_type": action, "redirect_to": "http://app"},
    }


@pytest.mark.asyncio
async def test_hook_sends_email_and_returns_empty_object(api_client):
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        resp = await api_client.post("/hooks/auth-email", json=_hook())

    assert resp.status_code == 200
    assert resp.json() == {}
    assert mock_deliver.call_args.kwargs["template"] == "recovery"


@pytest.mark.asyncio
async def test_hook_without_email(api_client):
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock):
        resp = await api_client.post("/hooks/auth-email", json=_hook(email=None))

    assert resp.status_code == 400
    assert resp.json()["detail"] == "No user email"


@pytest.mark.asyncio
async def test_hook_reports_delivery_failure(api_client):
    with patch(
        "app.domain.identity.auth_emails.mailer.deliver",
        new_callable=AsyncMock,
        side_effect=mailer.MailerError("smtp unreachable"),
    ):
        resp = await api_client.post("/hooks/auth-email", json=_hook())

    assert resp.status_code == 500
    assert resp.json()["detail"] == "smtp unreachable"


@pytest.mark.asyncio
async def test_hook_secret_enforced(api_client):
    settings.auth_hook_secret = "shh"
    with patch("app.domain.identity.auth_emails.mailer.deliver", new_callable=AsyncMock) as mock_deliver:
        denied = await api_client.post("/hooks/auth-email", json=_hook())
        allowed = await api_client.post("/hooks/auth-email", json=_hook(), headers={"X-Hook-Secret": "shh"})

    assert denied.status_code == 401
    assert denied.json()["detail"] == "invalid_hook_secret"
    assert allowed.status_code == 200
    assert mock_deliver.await_count == 1
