"""
Attendance endpoints — check-in, check-out and the user's own day.

Check-in/check-out are rate-limited per client IP; a coordinate outside every
permitted location is answered with 400 and the rejected coordinate.
"""

# Annotations stay evaluated: FastAPI reads them through the rate-limit wrapper
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select

from app.api.v1.deps import get_current_active_user, get_pipeline, get_store
from app.core.config import settings
from app.core.timeutils import local_day_bounds, to_local
from app.models.attendance import AttendanceEvent
from app.models.user import User
from app.repositories.store import AttendanceStore
from app.schemas.attendance import (AttendanceRead, AttendanceStateResponse, CheckInRequest,
                                    CheckInResponse, CheckOutRequest, CheckOutResponse)
from app.services.attendance_pipeline import AttendancePipeline

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)

# Rate limiter, keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


@router.post("/check-in", response_model=CheckInResponse)
@limiter.limit(settings.CHECK_IN_RATE_LIMIT)
async def check_in(
    request: Request,
    body: CheckInRequest,
    user: User = Depends(get_current_active_user),
    pipeline: AttendancePipeline = Depends(get_pipeline),
) -> CheckInResponse:
    """Check in at the current coordinate, optionally with a selfie URL."""
    result = await pipeline.check_in(
        user,
        body.latitude,
        body.longitude,
        location_hint=body.location_id,
        photo_url=body.photo_url,
        mock_location=body.is_mock,
    )
    event = result.attendance
    return CheckInResponse(
        message="Check-in successful",
        id=event.id,
        time=event.check_in_time.isoformat(),
        location_id=event.check_in_location_id,
        face_verified=result.face.verified,
        face_confidence=result.face.confidence,
        points_earned=result.points,
        fraud_score=result.fraud.score,
    )


@router.post("/check-out", response_model=CheckOutResponse)
@limiter.limit(settings.CHECK_IN_RATE_LIMIT)
async def check_out(
    request: Request,
    body: CheckOutRequest,
    user: User = Depends(get_current_active_user),
    pipeline: AttendancePipeline = Depends(get_pipeline),
) -> CheckOutResponse:
    """Close the user's open attendance (or the one given by id)."""
    result = await pipeline.check_out(
        user,
        body.latitude,
        body.longitude,
        attendance_id=body.attendance_id,
        location_hint=body.location_id,
    )
    event = result.attendance
    return CheckOutResponse(
        message="Check-out successful",
        id=event.id,
        time=event.check_out_time.isoformat() if event.check_out_time else "",
        location_id=event.check_out_location_id,
        points_earned=result.points,
        total_points=result.total_points,
    )


@router.get("/today", response_model=list[AttendanceRead])
async def today(
    user: User = Depends(get_current_active_user),
    store: AttendanceStore = Depends(get_store),
) -> list[AttendanceEvent]:
    """The user's attendances checked in on the current local date."""
    tz_offset = await store.get_tenant_timezone(user.tenant_id)
    local_today = to_local(datetime.now(timezone.utc), tz_offset).date()
    start, end = local_day_bounds(local_today, tz_offset)

    result = await store.db.execute(
        select(AttendanceEvent)
        .where(
            AttendanceEvent.user_id == user.id,
            AttendanceEvent.check_in_time >= start,
            AttendanceEvent.check_in_time < end,
        )
        .order_by(AttendanceEvent.check_in_time)
    )
    return list(result.scalars().all())


@router.get("/status", response_model=AttendanceStateResponse)
async def attendance_status(
    user: User = Depends(get_current_active_user),
    store: AttendanceStore = Depends(get_store),
) -> AttendanceStateResponse:
    """IN with the open attendance, or OUT."""
    open_event = await store.get_open_attendance(user.id)
    if open_event is None:
        return AttendanceStateResponse(state="OUT")
    return AttendanceStateResponse(
        state="IN", attendance=AttendanceRead.model_validate(open_event)
    )
