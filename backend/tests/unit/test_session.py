import pytest

from app.domain.identity.exceptions import NotAuthenticated
from app.domain.identity.session import SessionContext
from app.infra.auth import AuthenticatedUser


@pytest.mark.asyncio
async def test_sign_in_loads_profile(gateway, make_profile):
    user_id = make_profile("Alice")

    session = await SessionContext.sign_in(AuthenticatedUser(id=user_id), gateway.profiles)

    assert session.active
    assert session.profile.full_name == "Alice"
    assert session.require_user().id == user_id


@pytest.mark.asyncio
async def test_sign_out_runs_hooks_in_order_and_deactivates(gateway, make_profile):
    user_id = make_profile("Alice")
    session = await SessionContext.sign_in(AuthenticatedUser(id=user_id), gateway.profiles)
    calls = []

    async def async_hook():
        calls.append("async")

    session.on_close(lambda: calls.append("sync"))
    session.on_close(async_hook)
    await session.sign_out()

    assert calls == ["sync", "async"]
    assert not session.active
    assert session.profile is None
    with pytest.raises(NotAuthenticated):
        session.require_user()


@pytest.mark.asyncio
async def test_failing_hook_does_not_stop_teardown():
    session = SessionContext(AuthenticatedUser(id="u1"))
    calls = []

    def broken():
        raise RuntimeError("boom")

    session.on_close(broken)
    session.on_close(lambda: calls.append("after"))
    await session.sign_out()

    assert calls == ["after"]
    assert not session.active


@pytest.mark.asyncio
async def test_sign_out_twice_is_harmless():
    session = SessionContext(AuthenticatedUser(id="u1"))
    await session.sign_out()
    await session.sign_out()
    assert session.user is None
