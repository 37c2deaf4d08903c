"""
Notification model — rendered outbound messages and their delivery status.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from app.db.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    tenant_id: str = Column(String(36), nullable=False)  # type: ignore[assignment]
    type: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    message: str = Column(Text, nullable=False)  # type: ignore[assignment]
    data: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]
    delivery_status: str = Column(String(20), nullable=False, default="pending")  # type: ignore[assignment]
    # pending | sent | failed | skipped
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
