"""
Location resolution — which of a tenant's locations admits a coordinate.

Without a hint the first admitting active location wins (creation order);
there is no "closest match" selection. A rejection is returned
as a value; the route layer turns it into a 400 carrying the coordinate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.repositories.store import AttendanceStore
from app.services.geofence import is_admitted

logger = logging.getLogger(__name__)

DEFAULT_HINT = "default"

OUTSIDE_DESIGNATED_AREA = "Location validation failed. You are outside the designated area."
OUTSIDE_ANY_AREA = "Location validation failed. You are outside of any active office area."


@dataclass(frozen=True)
class Admission:
    admitted: bool
    location_id: str | None = None
    error: str | None = None


class LocationResolver:
    def __init__(self, store: AttendanceStore) -> None:
        self.store = store

    async def resolve(
        self,
        lat: float,
        lng: float,
        tenant_id: str,
        hint_location_id: str | None = None,
    ) -> Admission:
        if hint_location_id and hint_location_id != DEFAULT_HINT:
            zone = await self.store.get_zone(hint_location_id)
            if zone is not None and zone.tenant_id == tenant_id and is_admitted(lat, lng, zone):
                return Admission(admitted=True, location_id=zone.id)
            logger.info(
                "Rejected (%.6f, %.6f) for location %s of tenant %s",
                lat, lng, hint_location_id, tenant_id,
            )
            return Admission(admitted=False, error=OUTSIDE_DESIGNATED_AREA)

        zones = await self.store.list_active_zones(tenant_id)
        if not zones:
            # Tenant has not configured any geofence yet
            return Admission(admitted=True, location_id=None)

        for zone in zones:
            if is_admitted(lat, lng, zone):
                return Admission(admitted=True, location_id=zone.id)

        logger.info(
            "Rejected (%.6f, %.6f): outside all %d locations of tenant %s",
            lat, lng, len(zones), tenant_id,
        )
        return Admission(admitted=False, error=OUTSIDE_ANY_AREA)
