"""
Fraud review endpoints — flagged attendances, risk statistics and the manual
override that marks an attendance valid or invalid.

Scores are advisory: nothing here changes points already awarded.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin
from app.models.attendance import AttendanceEvent
from app.models.location import Location
from app.models.user import User
from app.schemas.attendance import AttendanceRead
from app.schemas.fraud import FlaggedAttendance, FraudOverrideRequest, FraudStatsResponse

router = APIRouter(prefix="/fraud", tags=["fraud"])
logger = logging.getLogger(__name__)

HIGH_RISK_SCORE = 50
MEDIUM_RISK_SCORE = 30


@router.get("/flagged", response_model=list[FlaggedAttendance])
async def flagged_attendances(
    min_score: int = Query(default=MEDIUM_RISK_SCORE, ge=0, le=100),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> list[FlaggedAttendance]:
    """Tenant attendances at or above ``min_score``, newest first."""
    result = await db.execute(
        select(AttendanceEvent, User.full_name, User.email, Location.name)
        .join(User, AttendanceEvent.user_id == User.id)
        .outerjoin(Location, AttendanceEvent.check_in_location_id == Location.id)
        .where(
            AttendanceEvent.tenant_id == admin.tenant_id,
            AttendanceEvent.fraud_score >= min_score,
        )
        .order_by(AttendanceEvent.check_in_time.desc())
        .limit(limit)
    )

    flagged: list[FlaggedAttendance] = []
    for event, user_name, user_email, location_name in result.all():
        item = FlaggedAttendance.model_validate(event)
        item.user_name = user_name
        item.user_email = user_email
        item.location_name = location_name
        flagged.append(item)
    return flagged


@router.get("/stats", response_model=FraudStatsResponse)
async def fraud_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> FraudStatsResponse:
    """Risk distribution over the tenant's flagged attendances."""
    result = await db.execute(
        select(AttendanceEvent.fraud_score, AttendanceEvent.fraud_flags).where(
            AttendanceEvent.tenant_id == admin.tenant_id,
            AttendanceEvent.fraud_score > 0,
        )
    )
    rows = result.all()

    stats = FraudStatsResponse(
        total_flagged=len(rows),
        high_risk=0,
        medium_risk=0,
        mock_location_detected=0,
        impossible_travel_detected=0,
        unusual_time_detected=0,
    )
    for score, flags in rows:
        if score >= HIGH_RISK_SCORE:
            stats.high_risk += 1
        elif score >= MEDIUM_RISK_SCORE:
            stats.medium_risk += 1
        flags = flags or {}
        if flags.get("mock_location"):
            stats.mock_location_detected += 1
        if flags.get("impossible_travel"):
            stats.impossible_travel_detected += 1
        if flags.get("unusual_time"):
            stats.unusual_time_detected += 1
    return stats


@router.put("/{attendance_id}/override", response_model=AttendanceRead)
async def override_fraud_flag(
    attendance_id: str,
    body: FraudOverrideRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> AttendanceEvent:
    """Record the reviewer's verdict on an attendance."""
    result = await db.execute(
        select(AttendanceEvent).where(
            AttendanceEvent.id == attendance_id,
            AttendanceEvent.tenant_id == admin.tenant_id,
        )
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise HTTPException(status_code=404, detail="Attendance not found")

    event.is_valid = body.is_valid
    event.review_notes = body.notes
    await db.commit()
    await db.refresh(event)
    logger.info(
        "Attendance %s marked %s by admin %s",
        attendance_id, "valid" if body.is_valid else "invalid", admin.id,
    )
    return event
