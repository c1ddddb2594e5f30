import os
import sys
from pathlib import Path
from uuid import uuid4

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-campus-connect-tests")
os.environ.setdefault("ENV", "dev")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from app.api import deps
from app.domain.identity.session import SessionContext
from app.domain.notifications import sockets as notification_sockets
from app.infra import postgres
from app.infra.auth import AuthenticatedUser
from app.infra.change_feed import ChangeFeed
from app.infra.memory import MemoryDatabase
from app.main import app
from app.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from app.infra.redis import redis_client, set_redis_client

    original = redis_client.client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
    async def _noop():
        return None

    monkeypatch.setattr(postgres, "init_pool", _noop)
    monkeypatch.setattr(postgres, "close_pool", _noop)
    monkeypatch.setattr(postgres, "apply_schema", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
    """API tests authenticate via X-User-Id headers, which are only accepted in dev mode."""
    original_env = settings.environment
    original_secret = settings.auth_hook_secret
    settings.environment = "dev"
    settings.auth_hook_secret = None
    try:
        yield
    finally:
        settings.environment = original_env
        settings.auth_hook_secret = original_secret


@pytest.fixture(autouse=True)
def detach_socket_namespace():
    original = notification_sockets._namespace
    notification_sockets.set_namespace(None)
    try:
        yield
    finally:
        notification_sockets.set_namespace(original)


@pytest.fixture
def db():
    return MemoryDatabase()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def gateway(db, feed):
    gw = deps.memory_gateway(db, feed)
    deps.set_gateway(gw)
    try:
        yield gw
    finally:
        deps.set_gateway(None)


@pytest.fixture
def make_profile(db):
    def _make(full_name="Test User", role="student", institution_id=None, **extra):
        user_id = str(extra.pop("user_id", uuid4()))
        row = {
            "user_id": user_id,
            "full_name": full_name,
            "email": f"{user_id[:8]}@campus.example",
            "role": role,
            "department": "Computer Science",
            "institution_id": institution_id,
            "connections_count": 0,
            "daily_streak": 0,
            "created_at": db.now(),
        }
        row.update(extra)
        db.profiles[user_id] = row
        return user_id

    return _make


@pytest.fixture
def sign_in(gateway):
    async def _sign_in(user_id, **kwargs):
        return await SessionContext.sign_in(AuthenticatedUser(id=user_id, **kwargs), gateway.profiles)

    return _sign_in


@pytest_asyncio.fixture
async def api_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
