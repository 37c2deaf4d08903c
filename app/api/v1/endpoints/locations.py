"""
Location (geofence) management — tenant-scoped CRUD.

Every write invalidates the tenant's cached location list so the resolver
never admits against a stale geofence.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select

from app.api.v1.deps import get_current_active_user, get_store, require_admin
from app.models.location import Location
from app.models.user import User
from app.repositories.store import AttendanceStore
from app.schemas.attendance import DeleteResponse
from app.schemas.location import LocationCreate, LocationRead, LocationUpdate

router = APIRouter(prefix="/locations", tags=["locations"])
logger = logging.getLogger(__name__)


async def _get_tenant_location(store: AttendanceStore, location_id: str, tenant_id: str) -> Location:
    result = await store.db.execute(
        select(Location).where(Location.id == location_id, Location.tenant_id == tenant_id)
    )
    location = result.scalar_one_or_none()
    if location is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


@router.get("", response_model=list[LocationRead])
async def list_locations(
    user: User = Depends(get_current_active_user),
    store: AttendanceStore = Depends(get_store),
) -> list[Location]:
    """All locations of the caller's tenant, active or not."""
    result = await store.db.execute(
        select(Location)
        .where(Location.tenant_id == user.tenant_id)
        .order_by(Location.created_at, Location.id)
    )
    return list(result.scalars().all())


@router.post("", response_model=LocationRead, status_code=201)
async def create_location(
    body: LocationCreate,
    admin: User = Depends(require_admin),
    store: AttendanceStore = Depends(get_store),
) -> Location:
    location = Location(tenant_id=admin.tenant_id, **body.model_dump())
    store.db.add(location)
    await store.db.commit()
    await store.db.refresh(location)
    await store.invalidate_locations(admin.tenant_id)
    logger.info("Location %s (%s) created for tenant %s", location.id, location.name, admin.tenant_id)
    return location


@router.get("/{location_id}", response_model=LocationRead)
async def get_location(
    location_id: str,
    user: User = Depends(get_current_active_user),
    store: AttendanceStore = Depends(get_store),
) -> Location:
    return await _get_tenant_location(store, location_id, user.tenant_id)


@router.put("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: str,
    body: LocationUpdate,
    admin: User = Depends(require_admin),
    store: AttendanceStore = Depends(get_store),
) -> Location:
    location = await _get_tenant_location(store, location_id, admin.tenant_id)

    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(location, field, value)

    await store.db.commit()
    await store.db.refresh(location)
    await store.invalidate_locations(admin.tenant_id)
    logger.info("Location %s updated: %s", location_id, sorted(changes))
    return location


@router.delete("/{location_id}", response_model=DeleteResponse)
async def delete_location(
    location_id: str,
    admin: User = Depends(require_admin),
    store: AttendanceStore = Depends(get_store),
) -> DeleteResponse:
    location = await _get_tenant_location(store, location_id, admin.tenant_id)
    await store.db.delete(location)
    await store.db.commit()
    await store.invalidate_locations(admin.tenant_id)
    logger.info("Location %s deleted from tenant %s", location_id, admin.tenant_id)
    return DeleteResponse(success=True, message="Location deleted")
