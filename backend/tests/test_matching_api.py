"""HTTP surface: role headers, status codes, error envelope, solo and group flows."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from core.dependencies import get_review_lookup
from main import app
from services.review_lookup import StaticReviewLookup

from factories import add_cast

GUEST_HEADERS = {"X-User-Id": "guest-1", "X-User-Role": "guest"}


def cast_headers(cast_id: str) -> dict:
    return {"X-User-Id": cast_id, "X-User-Role": "cast"}


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _error_code(response) -> str:
    body = response.json()
    assert body["success"] is False
    return body["error"]["code"]


SOLO_BODY = {"cast_id": "cast-a", "offset_minutes": 60, "duration_minutes": 120, "location": "Shibuya"}


@pytest.mark.asyncio
async def test_health_and_version(test_db):
    async with _client() as client:
        health = await client.get("/health")
        version = await client.get("/api/v1/meta/version")
    assert health.json() == {"status": "ok"}
    assert version.status_code == 200
    assert "version" in version.json()


@pytest.mark.asyncio
async def test_missing_identity_is_401(test_db):
    async with _client() as client:
        r = await client.get("/api/v1/solo-matchings/guest")
    assert r.status_code == 401
    assert _error_code(r) == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_wrong_role_is_403(test_db):
    async with _client() as client:
        r = await client.post("/api/v1/solo-matchings/guest", json=SOLO_BODY, headers=cast_headers("cast-a"))
    assert r.status_code == 403
    assert _error_code(r) == "FORBIDDEN"


@pytest.mark.asyncio
async def test_unknown_role_is_403(test_db):
    async with _client() as client:
        r = await client.get("/api/v1/solo-matchings/guest", headers={"X-User-Id": "u-1", "X-User-Role": "admin"})
    assert r.status_code == 403
    assert _error_code(r) == "FORBIDDEN"


@pytest.mark.asyncio
async def test_malformed_body_is_400(test_db):
    async with _client() as client:
        r = await client.post(
            "/api/v1/solo-matchings/guest",
            json={"cast_id": "cast-a", "location": "Shibuya"},
            headers=GUEST_HEADERS,
        )
    assert r.status_code == 400
    assert _error_code(r) == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_solo_flow_over_http(test_db):
    await add_cast(test_db, "cast-a")
    app.dependency_overrides[get_review_lookup] = lambda: StaticReviewLookup()
    try:
        async with _client() as client:
            r = await client.post("/api/v1/solo-matchings/guest", json=SOLO_BODY, headers=GUEST_HEADERS)
            assert r.status_code == 201
            created = r.json()["solo_matching"]
            assert created["status"] == "pending"
            assert created["total_points"] == 6000
            mid = created["id"]

            r = await client.get("/api/v1/solo-matchings/guest/pending/cast-a", headers=GUEST_HEADERS)
            assert r.json()["solo_matching"]["id"] == mid

            r = await client.get("/api/v1/solo-matchings/cast", headers=cast_headers("cast-a"))
            assert [m["id"] for m in r.json()["solo_matchings"]] == [mid]

            r = await client.patch(
                f"/api/v1/solo-matchings/cast/{mid}/respond",
                json={"response": "maybe"},
                headers=cast_headers("cast-a"),
            )
            assert r.status_code == 400

            r = await client.patch(
                f"/api/v1/solo-matchings/cast/{mid}/respond",
                json={"response": "accepted"},
                headers=cast_headers("cast-a"),
            )
            assert r.status_code == 200
            assert r.json()["solo_matching"]["status"] == "accepted"

            r = await client.patch(
                f"/api/v1/solo-matchings/cast/{mid}/respond",
                json={"response": "accepted"},
                headers=cast_headers("cast-a"),
            )
            assert r.status_code == 409
            assert _error_code(r) == "INVALID_STATE"

            r = await client.patch(f"/api/v1/solo-matchings/cast/{mid}/start", headers=cast_headers("cast-a"))
            assert r.json()["solo_matching"]["status"] == "in_progress"

            r = await client.get("/api/v1/solo-matchings/cast", headers=cast_headers("cast-a"))
            assert [m["id"] for m in r.json()["sessions"]] == [mid]

            r = await client.patch(
                f"/api/v1/solo-matchings/guest/{mid}/extend",
                json={"extension_minutes": 45},
                headers=GUEST_HEADERS,
            )
            assert r.status_code == 400
            assert _error_code(r) == "VALIDATION_ERROR"

            r = await client.patch(
                f"/api/v1/solo-matchings/guest/{mid}/extend",
                json={"extension_minutes": 30},
                headers=GUEST_HEADERS,
            )
            assert r.status_code == 200
            assert r.json()["solo_matching"]["extension_points"] == 1500

            r = await client.patch(f"/api/v1/solo-matchings/cast/{mid}/complete", headers=cast_headers("cast-a"))
            assert r.json()["solo_matching"]["status"] == "completed"
            r = await client.patch(f"/api/v1/solo-matchings/cast/{mid}/complete", headers=cast_headers("cast-a"))
            assert r.status_code == 409

            r = await client.get("/api/v1/solo-matchings/guest/completed", headers=GUEST_HEADERS)
            assert [m["id"] for m in r.json()["solo_matchings"]] == [mid]
            r = await client.get(f"/api/v1/solo-matchings/guest/{mid}/reviewable", headers=GUEST_HEADERS)
            assert r.status_code == 200
            r = await client.get("/api/v1/solo-matchings/guest", headers=GUEST_HEADERS)
            assert r.json()["solo_matchings"] == []
    finally:
        app.dependency_overrides.pop(get_review_lookup, None)


@pytest.mark.asyncio
async def test_solo_unknown_ids(test_db):
    async with _client() as client:
        r = await client.post(
            "/api/v1/solo-matchings/guest", json={**SOLO_BODY, "cast_id": "nobody"}, headers=GUEST_HEADERS
        )
        assert r.status_code == 404
        assert _error_code(r) == "NOT_FOUND"
        r = await client.patch(
            "/api/v1/solo-matchings/cast/missing/respond",
            json={"response": "accepted"},
            headers=cast_headers("cast-a"),
        )
        assert r.status_code == 404


@pytest.mark.asyncio
async def test_other_guest_cannot_cancel(test_db):
    await add_cast(test_db, "cast-a")
    async with _client() as client:
        r = await client.post("/api/v1/solo-matchings/guest", json=SOLO_BODY, headers=GUEST_HEADERS)
        mid = r.json()["solo_matching"]["id"]
        r = await client.patch(
            f"/api/v1/solo-matchings/guest/{mid}/cancel",
            headers={"X-User-Id": "guest-2", "X-User-Role": "guest"},
        )
        assert r.status_code == 403
        r = await client.patch(f"/api/v1/solo-matchings/guest/{mid}/cancel", headers=GUEST_HEADERS)
        assert r.json()["solo_matching"]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_group_without_eligible_casts_is_422(test_db):
    body = {"requested_cast_count": 2, "offset_minutes": 60, "duration_minutes": 60, "location": "Ginza"}
    async with _client() as client:
        r = await client.post("/api/v1/group-matchings/guest", json=body, headers=GUEST_HEADERS)
    assert r.status_code == 422
    assert _error_code(r) == "NO_ELIGIBLE_CASTS"


@pytest.mark.asyncio
async def test_group_flow_over_http(test_db):
    for cid in ("cast-a", "cast-b", "cast-c"):
        await add_cast(test_db, cid)
    body = {"requested_cast_count": 2, "offset_minutes": 60, "duration_minutes": 60, "location": "Ginza"}
    async with _client() as client:
        r = await client.post("/api/v1/group-matchings/guest", json=body, headers=GUEST_HEADERS)
        assert r.status_code == 201
        assert r.json()["participant_count"] == 3
        group = r.json()["group_matching"]
        assert group["total_points"] == 6000
        mid = group["id"]

        r = await client.get("/api/v1/group-matchings/cast", headers=cast_headers("cast-b"))
        rows = r.json()["group_matchings"]
        assert [g["id"] for g in rows] == [mid]
        assert rows[0]["participant"]["status"] == "pending"

        for cid, answer in (("cast-a", "accepted"), ("cast-b", "accepted"), ("cast-c", "rejected")):
            r = await client.patch(
                f"/api/v1/group-matchings/cast/{mid}/respond",
                json={"response": answer},
                headers=cast_headers(cid),
            )
            assert r.status_code == 200

        r = await client.get("/api/v1/group-matchings/guest", headers=GUEST_HEADERS)
        summary = r.json()["group_matchings"][0]
        assert summary["accepted_count"] == 2
        assert summary["participant_counts"]["rejected"] == 1

        r = await client.patch(f"/api/v1/group-matchings/guest/{mid}/close-recruiting", headers=GUEST_HEADERS)
        assert r.json()["group_matching"]["status"] == "accepted"

        r = await client.patch(f"/api/v1/group-matchings/cast/{mid}/start", headers=cast_headers("cast-a"))
        assert r.json()["group_matching"]["status"] == "in_progress"

        r = await client.patch(
            f"/api/v1/group-matchings/guest/{mid}/extend",
            json={"extension_minutes": 60},
            headers=GUEST_HEADERS,
        )
        assert r.json()["group_matching"]["extension_points"] == 6000

        r = await client.patch(f"/api/v1/group-matchings/cast/{mid}/complete", headers=cast_headers("cast-c"))
        assert r.status_code == 403
        r = await client.patch(f"/api/v1/group-matchings/cast/{mid}/complete", headers=cast_headers("cast-b"))
        assert r.json()["group_matching"]["status"] == "completed"


@pytest.mark.asyncio
async def test_solo_id_on_group_route_is_404(test_db):
    await add_cast(test_db, "cast-a")
    async with _client() as client:
        r = await client.post("/api/v1/solo-matchings/guest", json=SOLO_BODY, headers=GUEST_HEADERS)
        mid = r.json()["solo_matching"]["id"]
        r = await client.patch(f"/api/v1/group-matchings/guest/{mid}/cancel", headers=GUEST_HEADERS)
    assert r.status_code == 404
