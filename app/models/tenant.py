"""
Tenant model — read-only here; provisioning happens elsewhere.

``timezone_offset`` drives local-time rules (on-time bonus, streak dates,
unusual-hour fraud check).
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from app.db.base import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id: str = Column(String(36), primary_key=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    timezone_offset: str = Column(String(6), nullable=False, default="+07:00")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
