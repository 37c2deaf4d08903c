"""
Attendance model — one check-in and its paired check-out.

``status`` mirrors ``check_out_time`` explicitly: OPEN while the user is
checked in, CLOSED once the check-out leg is recorded.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, DateTime, Enum, Float, ForeignKey,
                        Index, Integer, String)

from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AttendanceEvent(Base):
    __tablename__ = "attendances"
    __table_args__ = (
        Index("ix_attendance_user_status", "user_id", "status"),
        Index("ix_attendance_user_check_in", "user_id", "check_in_time"),
    )

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    tenant_id: str = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)  # type: ignore[assignment]
    status: AttendanceStatus = Column(  # type: ignore[assignment]
        Enum(AttendanceStatus, name="attendance_status"),
        nullable=False,
        default=AttendanceStatus.OPEN,
    )

    check_in_time: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    check_in_lat: float = Column(Float, nullable=False)  # type: ignore[assignment]
    check_in_lng: float = Column(Float, nullable=False)  # type: ignore[assignment]
    check_in_location_id: str | None = Column(String(36), ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)  # type: ignore[assignment]

    check_out_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    check_out_lat: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    check_out_lng: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    check_out_location_id: str | None = Column(String(36), ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)  # type: ignore[assignment]

    face_verified: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    face_confidence: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    face_photo_url: str | None = Column(String(1024), nullable=True)  # type: ignore[assignment]

    fraud_score: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    fraud_flags: dict | None = Column(JSON, nullable=True)  # type: ignore[assignment]

    points_earned: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    is_valid: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    review_notes: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_open(self) -> bool:
        return self.status == AttendanceStatus.OPEN
