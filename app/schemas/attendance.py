"""Pydantic schemas for check-in / check-out and attendance reads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.attendance import AttendanceStatus


# ── Check-in / check-out ────────────────────────────────────────────
class CheckInRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    location_id: str | None = None
    photo_url: str | None = Field(default=None, max_length=1024)
    is_mock: bool | None = None

    @field_validator("location_id", "photo_url")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class CheckInResponse(BaseModel):
    success: bool = True
    message: str
    id: str
    time: str
    location_id: str | None
    face_verified: bool
    face_confidence: float
    points_earned: int
    fraud_score: int


class CheckOutRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    attendance_id: str | None = None
    location_id: str | None = None

    @field_validator("attendance_id", "location_id")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class CheckOutResponse(BaseModel):
    success: bool = True
    message: str
    id: str
    time: str
    location_id: str | None
    points_earned: int
    total_points: int


# ── Reads ───────────────────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: str
    user_id: int
    status: AttendanceStatus
    check_in_time: datetime
    check_in_lat: float
    check_in_lng: float
    check_in_location_id: str | None
    check_out_time: datetime | None = None
    check_out_lat: float | None = None
    check_out_lng: float | None = None
    check_out_location_id: str | None = None
    face_verified: bool
    face_confidence: float
    fraud_score: int
    fraud_flags: dict | None = None
    points_earned: int
    is_valid: bool
    review_notes: str | None = None

    model_config = {"from_attributes": True}


class AttendanceStateResponse(BaseModel):
    state: str  # IN | OUT
    attendance: AttendanceRead | None = None


# ── Health / Generic ───────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool
    redis: bool


class DeleteResponse(BaseModel):
    success: bool
    message: str
