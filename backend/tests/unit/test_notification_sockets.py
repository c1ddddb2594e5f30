import pytest
from unittest.mock import AsyncMock

from app.api import deps
from app.domain.notifications import sockets
from app.domain.notifications.repo import TABLE
from app.domain.notifications.service import NotificationService
from app.infra.jwt import encode_access
from app.settings import settings


def test_authenticate_with_token_in_auth_payload():
    token = encode_access({"sub": "user-1"})
    user = sockets._authenticate({"headers": []}, {"token": token})
    assert user.id == "user-1"


def test_authenticate_with_bearer_header():
    token = encode_access({"sub": "user-2"})
    scope = {"headers": [(b"authorization", f"Bearer {token}".encode())]}
    assert sockets._authenticate(scope, {}).id == "user-2"


def test_authenticate_rejects_bad_token():
    with pytest.raises(ConnectionRefusedError):
        sockets._authenticate({"headers": []}, {"token": "not-a-jwt"})


def test_dev_user_id_only_in_dev():
    assert sockets._authenticate({"headers": [(b"x-user-id", b"dev-user")]}, {}).id == "dev-user"
    settings.environment = "production"
    with pytest.raises(ConnectionRefusedError):
        sockets._authenticate({"headers": [(b"x-user-id", b"dev-user")]}, {})


@pytest.mark.asyncio
async def test_emits_go_to_the_user_room():
    namespace = sockets.NotificationsNamespace()
    namespace.emit = AsyncMock()
    sockets.set_namespace(namespace)

    await sockets.emit_notification_new("u1", {"id": "n1"})
    await sockets.emit_connection_update("u2", {"event": "removed"})

    first, second = namespace.emit.await_args_list
    assert first.args == ("notification:new", {"id": "n1"})
    assert first.kwargs == {"room": "user:u1"}
    assert second.args == ("connection:update", {"event": "removed"})
    assert second.kwargs == {"room": "user:u2"}


@pytest.mark.asyncio
async def test_emits_are_noops_without_namespace():
    await sockets.emit_notification_new("u1", {"id": "n1"})


def _socket_namespace():
    namespace = sockets.NotificationsNamespace(feed_factory=deps.open_notification_feed)
    namespace.emit = AsyncMock()
    namespace.enter_room = AsyncMock()
    namespace.leave_room = AsyncMock()
    return namespace


def _environ(user_id):
    return {"asgi.scope": {"headers": [(b"x-user-id", user_id.encode())]}}


def _snapshots(namespace):
    return [call for call in namespace.emit.await_args_list if call.args[0] == "notifications:snapshot"]


@pytest.mark.asyncio
async def test_connected_socket_receives_feed_snapshots(gateway, make_profile):
    bob = make_profile("Bob")
    namespace = _socket_namespace()

    await namespace.on_connect("sid1", _environ(bob), {})

    initial = _snapshots(namespace)
    assert len(initial) == 1
    assert initial[0].kwargs == {"room": "sid1"}
    assert initial[0].args[1]["unread_count"] == 0
    assert gateway.feed.listener_count(TABLE, bob) == 1

    await NotificationService(gateway.notifications).notify_user(
        bob, type="info", title="Welcome", description="hello"
    )

    latest = _snapshots(namespace)[-1]
    assert latest.kwargs == {"room": "sid1"}
    assert latest.args[1]["unread_count"] == 1
    assert latest.args[1]["badge"] == "1"
    assert latest.args[1]["items"][0]["title"] == "Welcome"


@pytest.mark.asyncio
async def test_disconnect_stops_the_feed_subscription(gateway, make_profile):
    bob = make_profile("Bob")
    namespace = _socket_namespace()
    await namespace.on_connect("sid1", _environ(bob), {})

    await namespace.on_disconnect("sid1")

    assert gateway.feed.listener_count(TABLE, bob) == 0
    before = len(_snapshots(namespace))
    await NotificationService(gateway.notifications).notify_user(
        bob, type="info", title="Late", description="hello"
    )
    assert len(_snapshots(namespace)) == before


@pytest.mark.asyncio
async def test_connect_survives_failed_initial_refresh(gateway, db, make_profile):
    bob = make_profile("Bob")
    namespace = _socket_namespace()
    db.fail_next("list_notifications", RuntimeError("db down"))

    await namespace.on_connect("sid1", _environ(bob), {})

    assert _snapshots(namespace) == []
    assert gateway.feed.listener_count(TABLE, bob) == 0
    namespace.emit.assert_any_await("notifications:ack", {"ok": True}, room="sid1")
