"""Pydantic schemas for locations (geofences)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class Vertex(BaseModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)


def _check_polygon(v: list[Vertex] | None) -> list[Vertex] | None:
    if v is None or len(v) == 0:
        return None
    if len(v) < 3:
        raise ValueError("polygon_coords needs at least 3 vertices")
    return v


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    radius_meters: int | None = Field(default=100, gt=0)
    polygon_coords: list[Vertex] | None = None
    is_active: bool = True
    use_custom_points: bool = False
    custom_points: int = Field(default=0, ge=0)

    @field_validator("polygon_coords")
    @classmethod
    def _polygon(cls, v: list[Vertex] | None) -> list[Vertex] | None:
        return _check_polygon(v)


class LocationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    latitude: float | None = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    longitude: float | None = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    radius_meters: int | None = Field(default=None, gt=0)
    polygon_coords: list[Vertex] | None = None
    is_active: bool | None = None
    use_custom_points: bool | None = None
    custom_points: int | None = Field(default=None, ge=0)

    @field_validator("polygon_coords")
    @classmethod
    def _polygon(cls, v: list[Vertex] | None) -> list[Vertex] | None:
        return _check_polygon(v)


class LocationRead(BaseModel):
    id: str
    tenant_id: str
    name: str
    latitude: float
    longitude: float
    radius_meters: int | None
    polygon_coords: list[Vertex] | None = None
    is_active: bool
    use_custom_points: bool
    custom_points: int
    created_at: datetime | None

    model_config = {"from_attributes": True}


class GeofenceZone(BaseModel):
    """Cacheable snapshot of a location, as the geofence evaluator needs it."""

    id: str
    tenant_id: str
    name: str = ""
    latitude: float
    longitude: float
    radius_meters: int | None = None
    # Raw as stored; the evaluator decides whether it is a usable polygon
    polygon_coords: list | str | None = None
    is_active: bool = True
    use_custom_points: bool = False
    custom_points: int = 0

    model_config = {"from_attributes": True}
