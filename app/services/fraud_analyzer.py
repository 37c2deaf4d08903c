"""
Fraud analysis — advisory risk scoring for a check-in.

Four independent indicators, each with a fixed weight; the score is their
capped sum. Nothing here blocks a check-in: the indicators are stored on the
attendance for admin review, and a warning is logged above the alert score.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from app.core.timeutils import ensure_utc, to_local
from app.repositories.store import AttendanceStore
from app.schemas.fraud import FraudIndicators
from app.services.geofence import distance_meters

logger = logging.getLogger(__name__)

WEIGHT_MOCK_LOCATION = 40
WEIGHT_IP_MISMATCH = 30
WEIGHT_IMPOSSIBLE_TRAVEL = 50
WEIGHT_UNUSUAL_TIME = 10
MAX_SCORE = 100

SPEED_THRESHOLD_KMH = 200
ALERT_SCORE = 50

WORK_HOURS_START = 6
WORK_HOURS_END = 22


def travel_speed_kmh(prior: Any, candidate: Any) -> float | None:
    """Implied speed between two check-ins, or ``None`` when not computable."""
    if prior is None:
        return None
    if None in (prior.check_in_lat, prior.check_in_lng, candidate.check_in_lat, candidate.check_in_lng):
        return None

    distance_km = distance_meters(
        prior.check_in_lat, prior.check_in_lng,
        candidate.check_in_lat, candidate.check_in_lng,
    ) / 1000
    elapsed_hours = (
        ensure_utc(candidate.check_in_time) - ensure_utc(prior.check_in_time)
    ).total_seconds() / 3600
    if elapsed_hours <= 0:
        return None
    return distance_km / elapsed_hours


def is_unusual_time(moment: datetime, tz_offset: str | None) -> bool:
    local = to_local(moment, tz_offset)
    outside_hours = local.hour < WORK_HOURS_START or local.hour > WORK_HOURS_END
    weekend = local.weekday() >= 5
    return outside_hours or weekend


def score_indicators(indicators: FraudIndicators) -> int:
    score = 0
    if indicators.mock_location:
        score += WEIGHT_MOCK_LOCATION
    if indicators.ip_mismatch:
        score += WEIGHT_IP_MISMATCH
    if indicators.impossible_travel:
        score += WEIGHT_IMPOSSIBLE_TRAVEL
    if indicators.unusual_time:
        score += WEIGHT_UNUSUAL_TIME
    return min(score, MAX_SCORE)


class FraudAnalyzer:
    def analyze(
        self,
        candidate: Any,
        prior: Any | None = None,
        mock_location: bool | None = None,
        tz_offset: str | None = None,
    ) -> FraudIndicators:
        """Score ``candidate`` against the user's ``prior`` GPS-bearing check-in."""
        indicators = FraudIndicators()

        if mock_location is True:
            indicators.mock_location = True
            indicators.details.append("Mock location app detected")

        # IP geolocation mismatch needs an IP-to-location source; none is wired in.
        indicators.ip_mismatch = False

        speed = travel_speed_kmh(prior, candidate)
        if speed is not None and speed > SPEED_THRESHOLD_KMH:
            indicators.impossible_travel = True
            indicators.details.append(f"Impossible travel: {speed:.1f} km/h since previous check-in")

        if is_unusual_time(candidate.check_in_time, tz_offset):
            indicators.unusual_time = True
            local = to_local(candidate.check_in_time, tz_offset)
            indicators.details.append(f"Unusual time: {local.strftime('%a %H:%M')}")

        indicators.score = score_indicators(indicators)
        return indicators

    async def assess(
        self,
        store: AttendanceStore,
        candidate: Any,
        mock_location: bool | None = None,
        tz_offset: str | None = None,
    ) -> FraudIndicators:
        """Fetch the prior event and analyze; degrades to a neutral result."""
        try:
            async with store.savepoint():
                prior = await store.get_prior_with_gps(
                    candidate.user_id, candidate.check_in_time, exclude_id=candidate.id
                )
        except Exception as e:
            logger.error("Prior attendance lookup failed for user %s: %s", candidate.user_id, e)
            prior = None

        try:
            indicators = self.analyze(candidate, prior, mock_location, tz_offset)
        except Exception as e:
            logger.error("Fraud analysis failed for attendance %s: %s", candidate.id, e)
            return FraudIndicators()

        if indicators.score > ALERT_SCORE:
            logger.warning(
                "[FRAUD] High risk check-in %s for user %s: score=%d %s",
                candidate.id, candidate.user_id, indicators.score, indicators.details,
            )
        return indicators
