"""Integration tests for the feedback endpoints and trust recomputation."""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from tests.conftest import TODAY, create_pool, signup


@pytest_asyncio.fixture
async def ride(client: AsyncClient):
    """A completed ride with Asha (creator) and Bela; Cara stayed home."""
    asha = await signup(client, "Asha")
    bela = await signup(client, "Bela")
    cara = await signup(client, "Cara")
    pool = await create_pool(client, asha, date=TODAY, time="09:58")
    await client.post(f"/api/v1/pools/{pool['id']}/join", headers=bela["headers"])
    resp = await client.patch(
        f"/api/v1/pools/{pool['id']}/status",
        json={"status": "completed"},
        headers=asha["headers"],
    )
    assert resp.status_code == 200
    return {"pool": pool, "asha": asha, "bela": bela, "cara": cara}


async def _rate(client, rater, ride_id, rated_id, score=4, **extra):
    return await client.post(
        "/api/v1/feedback",
        json={"ride_id": ride_id, "rated_user_id": rated_id, "score": score, **extra},
        headers=rater["headers"],
    )


@pytest.mark.asyncio
async def test_rating_sets_trust_score(client: AsyncClient, ride):
    asha, bela = ride["asha"], ride["bela"]
    resp = await _rate(
        client,
        asha,
        ride["pool"]["id"],
        bela["id"],
        score=4,
        comment=" Friendly ",
        categories={"punctuality": 5},
    )
    assert resp.status_code == 201
    feedback = resp.json()["feedback"]
    assert feedback["comment"] == "Friendly"
    assert feedback["categories"]["punctuality"] == 5
    assert feedback["rated_user"]["trust_score"] == 80

    resp = await client.get(
        f"/api/v1/feedback/user/{bela['id']}", headers=asha["headers"]
    )
    body = resp.json()
    assert body["summary"] == {"total_feedbacks": 1, "average_rating": 4.0}
    assert len(body["feedbacks"]) == 1

    me = await client.get("/api/v1/auth/me", headers=bela["headers"])
    assert me.json()["trust_score"] == 80
    assert me.json()["trust_level"] == "excellent"


@pytest.mark.asyncio
async def test_duplicate_feedback_rejected(client: AsyncClient, ride):
    asha, bela = ride["asha"], ride["bela"]
    assert (await _rate(client, asha, ride["pool"]["id"], bela["id"])).status_code == 201
    resp = await _rate(client, asha, ride["pool"]["id"], bela["id"], score=1)
    assert resp.status_code == 409

    resp = await client.get(
        f"/api/v1/feedback/user/{bela['id']}", headers=asha["headers"]
    )
    assert resp.json()["summary"]["total_feedbacks"] == 1


@pytest.mark.asyncio
async def test_outsider_cannot_rate(client: AsyncClient, ride):
    resp = await _rate(client, ride["cara"], ride["pool"]["id"], ride["bela"]["id"])
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_cannot_rate_outsider_or_self(client: AsyncClient, ride):
    asha = ride["asha"]
    pool_id = ride["pool"]["id"]
    assert (await _rate(client, asha, pool_id, ride["cara"]["id"])).status_code == 400
    assert (await _rate(client, asha, pool_id, asha["id"])).status_code == 400


@pytest.mark.asyncio
async def test_unknown_ride(client: AsyncClient, ride):
    resp = await _rate(client, ride["asha"], 9999, ride["bela"]["id"])
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Ride not found"


@pytest.mark.asyncio
async def test_ride_must_be_completed(client: AsyncClient):
    asha = await signup(client, "Asha")
    bela = await signup(client, "Bela")
    pool = await create_pool(client, asha)
    await client.post(f"/api/v1/pools/{pool['id']}/join", headers=bela["headers"])
    resp = await _rate(client, asha, pool["id"], bela["id"])
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_score_out_of_range_is_malformed(client: AsyncClient, ride):
    resp = await _rate(client, ride["asha"], ride["pool"]["id"], ride["bela"]["id"], score=6)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_ride_and_own_feedback_lists(client: AsyncClient, ride):
    asha, bela = ride["asha"], ride["bela"]
    pool_id = ride["pool"]["id"]
    await _rate(client, asha, pool_id, bela["id"], score=5)
    await _rate(client, bela, pool_id, asha["id"], score=3)

    resp = await client.get(f"/api/v1/feedback/pool/{pool_id}", headers=asha["headers"])
    assert len(resp.json()["feedbacks"]) == 2

    resp = await client.get("/api/v1/feedback/mine", headers=bela["headers"])
    mine = resp.json()["feedbacks"]
    assert len(mine) == 1
    assert mine[0]["rated_user"]["id"] == asha["id"]
    assert mine[0]["score"] == 3

    me = await client.get("/api/v1/auth/me", headers=asha["headers"])
    assert me.json()["trust_score"] == 60
