"""Pydantic schemas for fraud indicators and the admin review surface."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.schemas.attendance import AttendanceRead


class FraudIndicators(BaseModel):
    mock_location: bool = False
    ip_mismatch: bool = False
    impossible_travel: bool = False
    unusual_time: bool = False
    score: int = 0
    details: list[str] = Field(default_factory=list)


class FlaggedAttendance(AttendanceRead):
    user_name: str | None = None
    user_email: str | None = None
    location_name: str | None = None


class FraudStatsResponse(BaseModel):
    total_flagged: int
    high_risk: int
    medium_risk: int
    mock_location_detected: int
    impossible_travel_detected: int
    unusual_time_detected: int


class FraudOverrideRequest(BaseModel):
    is_valid: bool
    notes: str | None = Field(default=None, max_length=500)
