"""
PointRule model — tenant-configured scoring rule.

``conditions`` is stored as JSON; its shape depends on ``rule_type`` and is
validated by ``app.schemas.point_rule.PointRuleVariant``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class PointRule(Base):
    __tablename__ = "point_rules"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    rule_type: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # check_in | on_time | streak | full_day
    points_amount: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    conditions: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
