"""
Geofence evaluation — pure geometry, no I/O.

A location admits a point either by strict polygon containment (when it
carries a usable polygon of >= 3 vertices) or by great-circle distance to its
centre within ``radius_meters + 50``. The 50 m buffer absorbs GPS drift.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000
RADIUS_BUFFER_M = 50
DEFAULT_RADIUS_M = 100


class Vertex(NamedTuple):
    lat: float
    lng: float


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) *
         math.sin(delta_lambda / 2) ** 2)
    # Rounding can push a a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def point_in_polygon(point: Vertex, polygon: list[Vertex]) -> bool:
    """Even-odd ray casting along the longitude axis.

    The polygon is an open ring (last vertex is not repeated). Points exactly
    on an edge get whatever the parity test yields.
    """
    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i].lng, polygon[i].lat
        xj, yj = polygon[j].lng, polygon[j].lat
        if (yi > point.lat) != (yj > point.lat):
            x_cross = (xj - xi) * (point.lat - yi) / (yj - yi) + xi
            if point.lng < x_cross:
                inside = not inside
        j = i
    return inside


def parse_polygon(raw: Any) -> list[Vertex] | None:
    """Return a usable polygon, or ``None`` when absent, malformed or < 3 vertices."""
    if raw is None or raw == "":
        return None
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        if not isinstance(data, list) or len(data) < 3:
            return None
        vertices = []
        for item in data:
            if isinstance(item, dict):
                vertices.append(Vertex(float(item["lat"]), float(item["lng"])))
            else:
                vertices.append(Vertex(float(item[0]), float(item[1])))
        return vertices
    except (ValueError, TypeError, KeyError, IndexError) as e:
        logger.warning("Invalid polygon coords, falling back to radius: %s", e)
        return None


def is_admitted(lat: float, lng: float, zone: Any) -> bool:
    """Admission test for one location (ORM row or ``GeofenceZone``)."""
    polygon = parse_polygon(zone.polygon_coords)
    if polygon is not None:
        return point_in_polygon(Vertex(lat, lng), polygon)

    radius = zone.radius_meters or DEFAULT_RADIUS_M
    distance = distance_meters(lat, lng, zone.latitude, zone.longitude)
    return distance <= radius + RADIUS_BUFFER_M
