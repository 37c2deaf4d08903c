"""Tests for the admin surfaces: locations, point rules and fraud review."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attendance import AttendanceEvent
from tests.helpers import ADMIN_ID, EMPLOYEE_ID, FAR_LAT, FAR_LNG, HQ_LAT, HQ_LNG

LOCATIONS = "/api/v1/locations"
RULES = "/api/v1/point-rules"
CHECK_IN = "/api/v1/attendance/check-in"


# ── Locations ───────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_employee_cannot_create_location(async_client: AsyncClient, seed):
    resp = await async_client.post(LOCATIONS, json={"name": "X", "latitude": 0, "longitude": 0})
    assert resp.status_code == 403
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_employee_can_list_tenant_locations(async_client: AsyncClient, seed):
    resp = await async_client.get(LOCATIONS)
    assert resp.status_code == 200
    assert [loc["name"] for loc in resp.json()] == ["HQ"]


@pytest.mark.asyncio
async def test_new_location_is_used_immediately(async_client: AsyncClient, seed, login):
    # Prime the cached location list with a rejected check-in
    rejected = await async_client.post(CHECK_IN, json={"latitude": FAR_LAT, "longitude": FAR_LNG})
    assert rejected.status_code == 400

    login(ADMIN_ID)
    created = await async_client.post(LOCATIONS, json={
        "name": "Surabaya", "latitude": FAR_LAT, "longitude": FAR_LNG, "radius_meters": 200,
    })
    assert created.status_code == 201
    branch = created.json()
    assert branch["radius_meters"] == 200
    assert branch["polygon_coords"] is None

    login(EMPLOYEE_ID)
    admitted = await async_client.post(CHECK_IN, json={"latitude": FAR_LAT, "longitude": FAR_LNG})
    assert admitted.status_code == 200
    assert admitted.json()["location_id"] == branch["id"]


@pytest.mark.asyncio
async def test_polygon_needs_three_vertices(async_client: AsyncClient, seed, as_admin):
    resp = await async_client.post(LOCATIONS, json={
        "name": "Line", "latitude": 0, "longitude": 0,
        "polygon_coords": [{"lat": 0, "lng": 0}, {"lat": 1, "lng": 1}],
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_polygon_location_round_trip(async_client: AsyncClient, seed, as_admin):
    polygon = [{"lat": -6.21, "lng": 106.81}, {"lat": -6.21, "lng": 106.82}, {"lat": -6.19, "lng": 106.82}]
    resp = await async_client.post(LOCATIONS, json={
        "name": "Campus", "latitude": -6.2, "longitude": 106.815, "polygon_coords": polygon,
    })
    assert resp.status_code == 201
    assert resp.json()["polygon_coords"] == polygon


@pytest.mark.asyncio
async def test_deactivating_location_rejects_check_in(async_client: AsyncClient, seed, login):
    hq_id = seed["hq"].id
    login(ADMIN_ID)
    resp = await async_client.put(f"{LOCATIONS}/{hq_id}", json={"is_active": False})
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    # No active location left: the tenant is treated as having no geofence
    login(EMPLOYEE_ID)
    check_in = await async_client.post(CHECK_IN, json={"latitude": FAR_LAT, "longitude": FAR_LNG})
    assert check_in.status_code == 200
    assert check_in.json()["location_id"] is None


@pytest.mark.asyncio
async def test_delete_location(async_client: AsyncClient, seed, login, db_session: AsyncSession):
    hq_id = seed["hq"].id
    checked_in = await async_client.post(CHECK_IN, json={"latitude": HQ_LAT, "longitude": HQ_LNG})
    assert checked_in.json()["location_id"] == hq_id

    login(ADMIN_ID)
    resp = await async_client.delete(f"{LOCATIONS}/{hq_id}")
    assert resp.status_code == 200
    assert (await async_client.get(f"{LOCATIONS}/{hq_id}")).status_code == 404

    # History survives with the location reference cleared
    event = (await db_session.execute(select(AttendanceEvent))).scalar_one()
    assert event.id == checked_in.json()["id"]
    assert event.check_in_location_id is None


# ── Point rules ─────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_create_rule_normalises_deadline(async_client: AsyncClient, seed, as_admin):
    resp = await async_client.post(RULES, json={
        "name": "Early bird", "rule_type": "on_time", "points_amount": 5,
        "conditions": {"deadline": "08:45"},
    })
    assert resp.status_code == 201
    assert resp.json()["conditions"] == {"deadline": "08:45:00"}


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"name": "Bad", "rule_type": "on_time", "points_amount": 5, "conditions": {"deadline": "25:00"}},
    {"name": "Bad", "rule_type": "streak", "points_amount": 5, "conditions": {"days": 0}},
    {"name": "Bad", "rule_type": "full_day", "points_amount": 5, "conditions": {"hours": -1}},
    {"name": "Bad", "rule_type": "birthday", "points_amount": 5},
    {"name": "Bad", "rule_type": "check_in", "points_amount": -1},
])
async def test_invalid_rules_are_rejected(async_client: AsyncClient, seed, as_admin, body):
    resp = await async_client.post(RULES, json=body)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_rule_revalidates_conditions(async_client: AsyncClient, seed, as_admin):
    created = (await async_client.post(RULES, json={
        "name": "Streak", "rule_type": "streak", "points_amount": 7, "conditions": {"days": 5},
    })).json()

    ok = await async_client.put(f"{RULES}/{created['id']}", json={"conditions": {"days": 3}})
    assert ok.status_code == 200
    assert ok.json()["conditions"] == {"days": 3}

    bad = await async_client.put(f"{RULES}/{created['id']}", json={"conditions": {"days": "many"}})
    assert bad.status_code == 422


@pytest.mark.asyncio
async def test_rules_drive_check_in_points(async_client: AsyncClient, seed, login):
    login(ADMIN_ID)
    await async_client.post(RULES, json={"name": "Show up", "rule_type": "check_in", "points_amount": 25})

    login(EMPLOYEE_ID)
    resp = await async_client.post(CHECK_IN, json={"latitude": HQ_LAT, "longitude": HQ_LNG})
    assert resp.json()["points_earned"] == 25


@pytest.mark.asyncio
async def test_delete_rule_deactivates(async_client: AsyncClient, seed, as_admin):
    created = (await async_client.post(RULES, json={
        "name": "Show up", "rule_type": "check_in", "points_amount": 25,
    })).json()
    resp = await async_client.delete(f"{RULES}/{created['id']}")
    assert resp.status_code == 200

    rules = (await async_client.get(RULES)).json()
    assert rules[0]["is_active"] is False


@pytest.mark.asyncio
async def test_employee_cannot_manage_rules(async_client: AsyncClient, seed):
    assert (await async_client.get(RULES)).status_code == 403


# ── Fraud review ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_fraud_review_flow(async_client: AsyncClient, seed, login):
    mocked = await async_client.post(
        CHECK_IN, json={"latitude": HQ_LAT, "longitude": HQ_LNG, "is_mock": True}
    )
    attendance_id = mocked.json()["id"]

    login(ADMIN_ID)
    flagged = (await async_client.get("/api/v1/fraud/flagged")).json()
    assert [f["id"] for f in flagged] == [attendance_id]
    assert flagged[0]["user_email"] == "budi@acme.test"
    assert flagged[0]["location_name"] == "HQ"

    stats = (await async_client.get("/api/v1/fraud/stats")).json()
    assert stats["total_flagged"] == 1
    assert stats["mock_location_detected"] == 1
    assert stats["high_risk"] + stats["medium_risk"] == 1

    override = await async_client.put(
        f"/api/v1/fraud/{attendance_id}/override", json={"is_valid": False, "notes": "GPS spoofing app"}
    )
    assert override.status_code == 200
    assert override.json()["is_valid"] is False
    assert override.json()["review_notes"] == "GPS spoofing app"


@pytest.mark.asyncio
async def test_flagged_respects_min_score(async_client: AsyncClient, seed, as_admin):
    await async_client.post(CHECK_IN, json={"latitude": HQ_LAT, "longitude": HQ_LNG, "is_mock": True})
    resp = await async_client.get("/api/v1/fraud/flagged", params={"min_score": 100})
    assert resp.json() == []


@pytest.mark.asyncio
async def test_override_unknown_attendance(async_client: AsyncClient, seed, as_admin):
    resp = await async_client.put("/api/v1/fraud/nope/override", json={"is_valid": True})
    assert resp.status_code == 404


# ── Health ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_health_reports_database(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["db"] is True
