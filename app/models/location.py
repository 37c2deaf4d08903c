"""
Location model — a tenant's admission zone (radius or polygon geofence).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String

from app.db.base import Base


class Location(Base):
    __tablename__ = "locations"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    tenant_id: str = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    latitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    longitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    radius_meters: int | None = Column(Integer, nullable=True, default=100)  # type: ignore[assignment]
    # [{"lat": .., "lng": ..}, ...] — takes precedence over the radius when >= 3 vertices
    polygon_coords: list | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    use_custom_points: bool = Column(Boolean, default=False, server_default="false")  # type: ignore[assignment]
    custom_points: int = Column(Integer, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
