"""
Points rule engine — how many points one leg of an attendance earns.

Rules are independent and additive. The check-in leg runs ``check_in``,
``on_time`` and ``streak`` rules, the check-out leg runs ``full_day`` rules.
A location with custom points replaces the rules for the check-in leg.
Evaluation never raises: a broken rule counts as 0 and a broken evaluation
falls back to the default award.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from pydantic import ValidationError

from app.core.timeutils import ensure_utc, local_day_bounds, to_local
from app.models.attendance import AttendanceEvent
from app.models.user import User
from app.repositories.store import AttendanceStore
from app.schemas.point_rule import (CheckInRule, FullDayRule, OnTimeRule, PointRuleVariant,
                                    StreakRule, point_rule_adapter)

logger = logging.getLogger(__name__)

DEFAULT_CHECK_IN_POINTS = 10
DEFAULT_CHECK_OUT_POINTS = 0

CHECK_IN = "check_in"
CHECK_OUT = "check_out"

LEG_RULE_TYPES = {
    CHECK_IN: ("check_in", "on_time", "streak"),
    CHECK_OUT: ("full_day",),
}


def default_points(event_type: str) -> int:
    return DEFAULT_CHECK_IN_POINTS if event_type == CHECK_IN else DEFAULT_CHECK_OUT_POINTS


def worked_hours(event: AttendanceEvent) -> float | None:
    if event.check_out_time is None:
        return None
    delta = ensure_utc(event.check_out_time) - ensure_utc(event.check_in_time)
    return delta.total_seconds() / 3600


class PointsRuleEngine:
    def __init__(self, store: AttendanceStore, one_award_per_day: bool = False) -> None:
        self.store = store
        self.one_award_per_day = one_award_per_day

    async def evaluate(self, event_type: str, event: AttendanceEvent, user: User) -> int:
        try:
            async with self.store.savepoint():
                return await self._evaluate(event_type, event, user)
        except Exception as e:
            logger.error(
                "Points evaluation failed for attendance %s (%s): %s", event.id, event_type, e
            )
            return default_points(event_type)

    async def _evaluate(self, event_type: str, event: AttendanceEvent, user: User) -> int:
        tz_offset = await self.store.get_tenant_timezone(event.tenant_id)

        if event_type == CHECK_IN:
            if self.one_award_per_day and await self._already_awarded_today(event, tz_offset):
                logger.info("User %s already earned check-in points today", user.id)
                return 0

            custom = await self._custom_location_points(event)
            if custom is not None:
                return custom

        rows = await self.store.list_active_rules(event.tenant_id)
        if not rows:
            return default_points(event_type)

        total = 0
        for rule in self._load_rules(rows, event_type):
            try:
                async with self.store.savepoint():
                    total += await self._apply(rule, event, tz_offset)
            except Exception as e:
                logger.error("Rule %s (%s) failed: %s", rule.id, rule.rule_type, e)

        if event_type == CHECK_IN and total == 0:
            return DEFAULT_CHECK_IN_POINTS
        return total

    def _load_rules(self, rows: list, event_type: str) -> list[PointRuleVariant]:
        wanted = LEG_RULE_TYPES.get(event_type, ())
        rules = []
        for row in rows:
            if row.rule_type not in wanted:
                continue
            try:
                rules.append(point_rule_adapter.validate_python({
                    "id": row.id,
                    "name": row.name,
                    "rule_type": row.rule_type,
                    "points_amount": row.points_amount,
                    "conditions": row.conditions,
                    "is_active": row.is_active,
                }))
            except (ValidationError, ValueError) as e:
                logger.warning("Skipping invalid point rule %s: %s", row.id, e)
        return rules

    async def _apply(self, rule: PointRuleVariant, event: AttendanceEvent, tz_offset: str) -> int:
        if isinstance(rule, CheckInRule):
            return rule.points_amount

        if isinstance(rule, OnTimeRule):
            local = to_local(event.check_in_time, tz_offset).strftime("%H:%M:%S")
            return rule.points_amount if local <= rule.conditions.deadline else 0

        if isinstance(rule, StreakRule):
            streak = await self._attended_days(event, tz_offset, rule.conditions.days)
            return rule.points_amount if streak >= rule.conditions.days else 0

        if isinstance(rule, FullDayRule):
            hours = worked_hours(event)
            if hours is None or hours < rule.conditions.hours:
                return 0
            if rule.conditions.max_hours is not None and hours > rule.conditions.max_hours:
                return 0
            return rule.points_amount

        return 0

    async def _attended_days(self, event: AttendanceEvent, tz_offset: str, days: int) -> int:
        """Distinct local dates with a valid attendance in [today - days, today]."""
        today = to_local(event.check_in_time, tz_offset).date()
        start, end = local_day_bounds(today - timedelta(days=days), tz_offset, days=days + 1)
        times = await self.store.attended_check_in_times(event.user_id, start, end)
        return len({to_local(t, tz_offset).date() for t in times})

    async def _already_awarded_today(self, event: AttendanceEvent, tz_offset: str) -> bool:
        today = to_local(event.check_in_time, tz_offset).date()
        start, end = local_day_bounds(today, tz_offset)
        count = await self.store.count_awarded_check_ins(event.user_id, event.id, start, end)
        return count > 0

    async def _custom_location_points(self, event: AttendanceEvent) -> int | None:
        if not event.check_in_location_id:
            return None
        zone = await self.store.get_zone(event.check_in_location_id)
        if zone is None or not zone.use_custom_points:
            return None
        if zone.custom_points and zone.custom_points > 0:
            return zone.custom_points
        return None
