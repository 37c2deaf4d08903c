"""
Attendance admission pipeline.

Check-in runs location resolution (hard gate), face matching and fraud
analysis (advisory), then persists the event, evaluates points and appends
the ledger entry in one transaction. Check-out closes the user's open event
under the same location gate and awards the check-out leg.

A user is either OUT (no open attendance) or IN (exactly one open
attendance); checking in while IN or out while OUT is an error.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import AttendanceStateError, LocationAdmissionError
from app.core.timeutils import to_local
from app.models.attendance import AttendanceEvent, AttendanceStatus
from app.models.user import User
from app.repositories.store import AttendanceStore
from app.schemas.fraud import FraudIndicators
from app.services.face_matcher import FaceMatcher, FaceMatchResult
from app.services.fraud_analyzer import FraudAnalyzer
from app.services.location_resolver import LocationResolver
from app.services.notifications import NotificationService
from app.services.points_engine import CHECK_IN, CHECK_OUT, PointsRuleEngine

logger = logging.getLogger(__name__)

ALREADY_CHECKED_IN = "Already checked in. Check out before checking in again."
NO_ACTIVE_CHECK_IN = "No active check-in found"


@dataclass
class CheckInResult:
    attendance: AttendanceEvent
    face: FaceMatchResult
    fraud: FraudIndicators
    points: int


@dataclass
class CheckOutResult:
    attendance: AttendanceEvent
    points: int

    @property
    def total_points(self) -> int:
        return self.attendance.points_earned


class AttendancePipeline:
    def __init__(
        self,
        store: AttendanceStore,
        resolver: LocationResolver,
        face_matcher: FaceMatcher,
        fraud_analyzer: FraudAnalyzer,
        points_engine: PointsRuleEngine,
        notifier: NotificationService | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.face_matcher = face_matcher
        self.fraud_analyzer = fraud_analyzer
        self.points_engine = points_engine
        self.notifier = notifier

    # ── Check-in ────────────────────────────────────────────────────
    async def check_in(
        self,
        user: User,
        lat: float,
        lng: float,
        location_hint: str | None = None,
        photo_url: str | None = None,
        mock_location: bool | None = None,
        now: datetime | None = None,
    ) -> CheckInResult:
        now = now or datetime.now(timezone.utc)

        if await self.store.get_open_attendance(user.id) is not None:
            raise AttendanceStateError(ALREADY_CHECKED_IN, status_code=409)

        admission = await self.resolver.resolve(lat, lng, user.tenant_id, location_hint)
        if not admission.admitted:
            raise LocationAdmissionError(admission.error or "Location validation failed", lat, lng)

        face = await self.face_matcher.compare(user.face_photo_url, photo_url)

        event = AttendanceEvent(
            id=str(uuid.uuid4()),
            user_id=user.id,
            tenant_id=user.tenant_id,
            status=AttendanceStatus.OPEN,
            check_in_time=now,
            check_in_lat=lat,
            check_in_lng=lng,
            check_in_location_id=admission.location_id,
            face_verified=face.verified,
            face_confidence=face.confidence,
            face_photo_url=photo_url,
            points_earned=0,
            is_valid=True,
            created_at=now,
        )

        tz_offset = await self.store.get_tenant_timezone(user.tenant_id)
        fraud = await self.fraud_analyzer.assess(self.store, event, mock_location, tz_offset)
        event.fraud_score = fraud.score
        event.fraud_flags = fraud.model_dump()

        try:
            await self.store.add_attendance(event)
            points = await self.points_engine.evaluate(CHECK_IN, event, user)
            event.points_earned = points
            await self.store.append_ledger(
                user, points, CHECK_IN, event.id, "Points earned for check-in"
            )
            await self.store.commit()
        except SQLAlchemyError:
            await self.store.rollback()
            raise

        logger.info(
            "User %s checked in (attendance=%s location=%s points=%d fraud=%d)",
            user.id, event.id, event.check_in_location_id, points, fraud.score,
        )
        await self._notify(user, "check_in_success", event, {
            "check_in_time": self._format_local(now, tz_offset),
            "points": points,
        }, event.check_in_location_id)

        return CheckInResult(attendance=event, face=face, fraud=fraud, points=points)

    # ── Check-out ───────────────────────────────────────────────────
    async def check_out(
        self,
        user: User,
        lat: float,
        lng: float,
        attendance_id: str | None = None,
        location_hint: str | None = None,
        now: datetime | None = None,
    ) -> CheckOutResult:
        now = now or datetime.now(timezone.utc)

        if attendance_id:
            event = await self.store.get_attendance(attendance_id)
            if event is None or event.user_id != user.id or not event.is_open:
                event = None
        else:
            event = await self.store.get_open_attendance(user.id)
        if event is None:
            raise AttendanceStateError(NO_ACTIVE_CHECK_IN, status_code=404)

        admission = await self.resolver.resolve(lat, lng, user.tenant_id, location_hint)
        if not admission.admitted:
            raise LocationAdmissionError(admission.error or "Location validation failed", lat, lng)

        event.check_out_time = now
        event.check_out_lat = lat
        event.check_out_lng = lng
        event.check_out_location_id = admission.location_id
        event.status = AttendanceStatus.CLOSED

        try:
            points = await self.points_engine.evaluate(CHECK_OUT, event, user)
            event.points_earned = (event.points_earned or 0) + points
            await self.store.append_ledger(
                user, points, CHECK_OUT, event.id, "Points earned for check-out"
            )
            await self.store.commit()
        except SQLAlchemyError:
            await self.store.rollback()
            raise

        tz_offset = await self.store.get_tenant_timezone(user.tenant_id)
        logger.info(
            "User %s checked out (attendance=%s points=%d total=%d)",
            user.id, event.id, points, event.points_earned,
        )
        await self._notify(user, "check_out_success", event, {
            "check_out_time": self._format_local(now, tz_offset),
            "points": points,
        }, event.check_out_location_id)

        return CheckOutResult(attendance=event, points=points)

    # ── Helpers ─────────────────────────────────────────────────────
    @staticmethod
    def _format_local(moment: datetime, tz_offset: str) -> str:
        return to_local(moment, tz_offset).strftime("%Y-%m-%d %H:%M")

    async def _notify(
        self,
        user: User,
        notification_type: str,
        event: AttendanceEvent,
        data: dict,
        location_id: str | None,
    ) -> None:
        if self.notifier is None:
            return
        try:
            zone = await self.store.get_zone(location_id) if location_id else None
            await self.notifier.send(user, notification_type, {
                **data,
                "attendance_id": event.id,
                "location_name": zone.name if zone else None,
            })
        except Exception as e:
            logger.warning("Skipping %s notification for user %s: %s", notification_type, user.id, e)
