"""Tests for resolving which location admits a coordinate."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.location import Location
from app.repositories.store import AttendanceStore
from app.services.location_resolver import (OUTSIDE_ANY_AREA, OUTSIDE_DESIGNATED_AREA,
                                            LocationResolver)
from tests.helpers import FAR_LAT, FAR_LNG, HQ_LAT, HQ_LNG, OTHER_TENANT_ID, TENANT_ID


async def _add_location(db: AsyncSession, tenant_id: str, name: str, lat: float, lng: float,
                        created: datetime, **kwargs) -> Location:
    loc = Location(tenant_id=tenant_id, name=name, latitude=lat, longitude=lng,
                   created_at=created, **kwargs)
    db.add(loc)
    await db.commit()
    return loc


@pytest.mark.asyncio
async def test_coordinate_inside_office_is_admitted(seed, store: AttendanceStore):
    admission = await LocationResolver(store).resolve(HQ_LAT, HQ_LNG, TENANT_ID)
    assert admission.admitted is True
    assert admission.location_id == seed["hq"].id
    assert admission.error is None


@pytest.mark.asyncio
async def test_coordinate_outside_all_offices_is_rejected(seed, store: AttendanceStore):
    admission = await LocationResolver(store).resolve(FAR_LAT, FAR_LNG, TENANT_ID)
    assert admission.admitted is False
    assert admission.location_id is None
    assert admission.error == OUTSIDE_ANY_AREA


@pytest.mark.asyncio
async def test_first_admitting_location_wins(seed, db_session: AsyncSession, store: AttendanceStore):
    """Overlapping zones resolve to the earliest created, not the closest."""
    later = await _add_location(
        db_session, TENANT_ID, "HQ annex", HQ_LAT, HQ_LNG,
        datetime(2024, 6, 1, tzinfo=timezone.utc), radius_meters=500,
    )
    admission = await LocationResolver(store).resolve(HQ_LAT, HQ_LNG, TENANT_ID)
    assert admission.location_id == seed["hq"].id
    assert admission.location_id != later.id


@pytest.mark.asyncio
async def test_inactive_locations_are_ignored(seed, db_session: AsyncSession, store: AttendanceStore):
    await _add_location(
        db_session, TENANT_ID, "Closed branch", FAR_LAT, FAR_LNG,
        datetime(2024, 2, 1, tzinfo=timezone.utc), radius_meters=100, is_active=False,
    )
    admission = await LocationResolver(store).resolve(FAR_LAT, FAR_LNG, TENANT_ID)
    assert admission.admitted is False


@pytest.mark.asyncio
async def test_hinted_location_is_checked_alone(seed, db_session: AsyncSession, store: AttendanceStore):
    branch = await _add_location(
        db_session, TENANT_ID, "Branch", FAR_LAT, FAR_LNG,
        datetime(2024, 2, 1, tzinfo=timezone.utc), radius_meters=100,
    )
    resolver = LocationResolver(store)

    ok = await resolver.resolve(FAR_LAT, FAR_LNG, TENANT_ID, hint_location_id=branch.id)
    assert ok.admitted is True
    assert ok.location_id == branch.id

    # Inside HQ, but the hint names the branch
    rejected = await resolver.resolve(HQ_LAT, HQ_LNG, TENANT_ID, hint_location_id=branch.id)
    assert rejected.admitted is False
    assert rejected.error == OUTSIDE_DESIGNATED_AREA


@pytest.mark.asyncio
async def test_default_hint_means_enumerate(seed, store: AttendanceStore):
    admission = await LocationResolver(store).resolve(HQ_LAT, HQ_LNG, TENANT_ID, hint_location_id="default")
    assert admission.admitted is True
    assert admission.location_id == seed["hq"].id


@pytest.mark.asyncio
async def test_hint_from_another_tenant_is_rejected(seed, db_session: AsyncSession, store: AttendanceStore):
    foreign = await _add_location(
        db_session, OTHER_TENANT_ID, "Globex HQ", HQ_LAT, HQ_LNG,
        datetime(2024, 1, 1, tzinfo=timezone.utc), radius_meters=100,
    )
    admission = await LocationResolver(store).resolve(HQ_LAT, HQ_LNG, TENANT_ID, hint_location_id=foreign.id)
    assert admission.admitted is False
    assert admission.error == OUTSIDE_DESIGNATED_AREA


@pytest.mark.asyncio
async def test_unknown_hint_is_rejected(seed, store: AttendanceStore):
    admission = await LocationResolver(store).resolve(HQ_LAT, HQ_LNG, TENANT_ID, hint_location_id="nope")
    assert admission.admitted is False


@pytest.mark.asyncio
async def test_tenant_without_locations_is_admitted_unresolved(seed, store: AttendanceStore):
    admission = await LocationResolver(store).resolve(FAR_LAT, FAR_LNG, OTHER_TENANT_ID)
    assert admission.admitted is True
    assert admission.location_id is None


@pytest.mark.asyncio
async def test_locations_are_cached_until_invalidated(seed, db_session: AsyncSession, store: AttendanceStore):
    resolver = LocationResolver(store)
    assert (await resolver.resolve(FAR_LAT, FAR_LNG, TENANT_ID)).admitted is False

    await _add_location(
        db_session, TENANT_ID, "Branch", FAR_LAT, FAR_LNG,
        datetime(2024, 2, 1, tzinfo=timezone.utc), radius_meters=100,
    )
    # Still served from the cached list
    assert (await resolver.resolve(FAR_LAT, FAR_LNG, TENANT_ID)).admitted is False

    await store.invalidate_locations(TENANT_ID)
    assert (await resolver.resolve(FAR_LAT, FAR_LNG, TENANT_ID)).admitted is True
