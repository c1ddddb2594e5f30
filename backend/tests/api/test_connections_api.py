import pytest


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.fixture
def pair(gateway, make_profile):
    alice = make_profile("Alice", institution_id="11111111-1111-1111-1111-111111111111")
    bob = make_profile("Bob", institution_id="11111111-1111-1111-1111-111111111111")
    return alice, bob


@pytest.mark.asyncio
async def test_requires_authentication(api_client, gateway):
    resp = await api_client.get("/connections/requests")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_full_request_lifecycle(api_client, pair, db):
    alice, bob = pair

    resp = await api_client.post(
        "/connections/requests", json={"receiver_id": bob, "message": "  hi Bob  "}, headers=_as(alice)
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["feedback"]["title"] == "Connection request sent"
    assert body["status"]["status"] == "sent"
    assert body["requests"][0]["message"] == "hi Bob"

    resp = await api_client.get(f"/connections/status/{alice}", headers=_as(bob))
    assert resp.json()["status"] == "received"

    pending = (await api_client.get("/connections/pending", headers=_as(bob))).json()
    assert len(pending) == 1
    request_id = pending[0]["id"]

    resp = await api_client.post(f"/connections/requests/{request_id}/accept", headers=_as(bob))
    assert resp.status_code == 200
    assert resp.json()["feedback"]["description"] == "You are now connected!"
    assert db.profiles[alice]["connections_count"] == 1
    assert db.profiles[bob]["connections_count"] == 1

    resp = await api_client.get(f"/connections/status/{bob}", headers=_as(alice))
    assert resp.json()["status"] == "connected"

    resp = await api_client.delete(f"/connections/{bob}", headers=_as(alice))
    assert resp.status_code == 200
    assert resp.json()["status"]["status"] == "none"
    assert db.profiles[alice]["connections_count"] == 0
    assert db.profiles[bob]["connections_count"] == 0
    assert db.connection_requests == {}


@pytest.mark.asyncio
async def test_duplicate_request_conflicts(api_client, pair):
    alice, bob = pair
    await api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))

    resp = await api_client.post("/connections/requests", json={"receiver_id": alice}, headers=_as(bob))

    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["ok"] is False
    assert detail["reason"] == "conflict"
    assert detail["variant"] == "destructive"
    assert "request_id" in resp.json()


@pytest.mark.asyncio
async def test_self_request_conflicts(api_client, pair):
    alice, _ = pair
    resp = await api_client.post("/connections/requests", json={"receiver_id": alice}, headers=_as(alice))
    assert resp.status_code == 409
    assert resp.json()["detail"]["reason"] == "self_request"


@pytest.mark.asyncio
async def test_only_sender_may_cancel(api_client, pair):
    alice, bob = pair
    sent = await api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))
    request_id = sent.json()["requests"][0]["id"]

    resp = await api_client.post(f"/connections/requests/{request_id}/cancel", headers=_as(bob))
    assert resp.status_code == 403

    resp = await api_client.post(f"/connections/requests/{request_id}/cancel", headers=_as(alice))
    assert resp.status_code == 200
    assert resp.json()["requests"] == []


@pytest.mark.asyncio
async def test_declined_request_cannot_be_accepted(api_client, pair):
    alice, bob = pair
    sent = await api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))
    request_id = sent.json()["requests"][0]["id"]

    resp = await api_client.post(f"/connections/requests/{request_id}/decline", headers=_as(bob))
    assert resp.status_code == 200

    resp = await api_client.post(f"/connections/requests/{request_id}/accept", headers=_as(bob))
    assert resp.status_code == 410
    assert resp.json()["detail"]["reason"] == "gone"

    resp = await api_client.get(f"/connections/status/{bob}", headers=_as(alice))
    assert resp.json()["status"] == "none"


@pytest.mark.asyncio
async def test_remove_when_not_connected(api_client, pair):
    alice, bob = pair
    resp = await api_client.delete(f"/connections/{bob}", headers=_as(alice))
    assert resp.status_code == 409
    assert resp.json()["detail"]["reason"] == "not_connected"


@pytest.mark.asyncio
async def test_request_rate_limit(api_client, gateway, make_profile, monkeypatch):
    from app.settings import settings

    monkeypatch.setattr(settings, "request_per_minute", 1)
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    carol = make_profile("Carol")
    await api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))

    resp = await api_client.post("/connections/requests", json={"receiver_id": carol}, headers=_as(alice))

    assert resp.status_code == 429
    assert resp.json()["detail"]["reason"] == "per_minute"


@pytest.mark.asyncio
async def test_overlong_message_rejected(api_client, pair):
    alice, bob = pair
    resp = await api_client.post(
        "/connections/requests", json={"receiver_id": bob, "message": "x" * 501}, headers=_as(alice)
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["reason"] == "invalid_message"


@pytest.mark.asyncio
async def test_directory_groups_profiles(api_client, gateway, make_profile):
    me = make_profile("Me")
    make_profile("Student")
    make_profile("Mentor", role="mentor")
    make_profile("Dean", role="authority")

    resp = await api_client.get("/connections/directory", headers=_as(me))

    assert resp.status_code == 200
    body = resp.json()
    assert [p["full_name"] for p in body["students"]] == ["Student"]
    assert [p["full_name"] for p in body["mentors"]] == ["Mentor"]
    assert [p["full_name"] for p in body["authorities"]] == ["Dean"]


@pytest.mark.asyncio
async def test_mentor_request(api_client, gateway, make_profile, db):
    me = make_profile("Me")
    mentor = make_profile("Mentor", role="mentor")

    resp = await api_client.post(f"/connections/mentors/{mentor}", headers=_as(me))

    assert resp.status_code == 200
    assert resp.json()["feedback"]["title"] == "Mentor request sent"
    relationship = next(iter(db.mentoring_relationships.values()))
    assert relationship["mentee_id"] == me
    assert relationship["status"] == "pending"


@pytest.mark.asyncio
async def test_bearer_token_authenticates_outside_dev(api_client, pair):
    from app.infra.jwt import encode_access
    from app.settings import settings

    alice, bob = pair
    settings.environment = "production"
    token = encode_access({"sub": alice, "roles": ["student"]})

    header_only = await api_client.get(f"/connections/status/{bob}", headers=_as(alice))
    with_token = await api_client.get(
        f"/connections/status/{bob}", headers={"Authorization": f"Bearer {token}"}
    )
    garbage = await api_client.get(f"/connections/status/{bob}", headers={"Authorization": "Bearer nope"})

    assert header_only.status_code == 401
    assert with_token.status_code == 200
    assert with_token.json()["status"] == "none"
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_concurrent_duplicate_submission_is_rejected(api_client, pair, gateway, db):
    import asyncio

    from app.domain.connections.repo import InMemoryConnectionRepository

    alice, bob = pair
    release = asyncio.Event()
    entered = asyncio.Event()

    class GatedRepository(InMemoryConnectionRepository):
        async def insert_request(self, sender_id, receiver_id, message):
            entered.set()
            await release.wait()
            return await super().insert_request(sender_id, receiver_id, message)

    gateway.connections = GatedRepository(db, gateway.feed)
    first = asyncio.create_task(
        api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))
    )
    await entered.wait()

    second = await api_client.post("/connections/requests", json={"receiver_id": bob}, headers=_as(alice))
    release.set()
    first_response = await first

    assert second.status_code == 409
    assert second.json()["detail"]["reason"] == "in_flight"
    assert first_response.status_code == 200
    assert len(db.connection_requests) == 1
