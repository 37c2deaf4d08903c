"""
Attendance store — the queries the admission pipeline needs, over one
``AsyncSession``.

Nothing here commits on its own except ``commit()``: the pipeline adds the
event, the ledger entry and the balance change and then commits once, so an
operation either lands completely or not at all.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm.attributes import set_committed_value

from app.core.cache import TTLCache
from app.models.attendance import AttendanceEvent, AttendanceStatus
from app.models.location import Location
from app.models.point_rule import PointRule
from app.models.points_ledger import PointsLedgerEntry
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.location import GeofenceZone

logger = logging.getLogger(__name__)

DEFAULT_TZ_OFFSET = "+07:00"


def _locations_key(tenant_id: str) -> str:
    return f"locations:{tenant_id}"


def _tenant_key(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


class AttendanceStore:
    def __init__(self, db: AsyncSession, cache: TTLCache, cache_ttl: int | None = None) -> None:
        self.db = db
        self.cache = cache
        self.cache_ttl = cache_ttl

    # ── Tenants ─────────────────────────────────────────────────────
    async def get_tenant_timezone(self, tenant_id: str) -> str:
        cached = await self.cache.get(_tenant_key(tenant_id))
        if cached is not None:
            return cached["timezone_offset"]

        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        tenant = result.scalar_one_or_none()
        tz_offset = tenant.timezone_offset if tenant and tenant.timezone_offset else DEFAULT_TZ_OFFSET
        await self.cache.set(
            _tenant_key(tenant_id), {"timezone_offset": tz_offset}, self.cache_ttl
        )
        return tz_offset

    # ── Locations ───────────────────────────────────────────────────
    async def list_active_zones(self, tenant_id: str) -> list[GeofenceZone]:
        """Active locations of a tenant in creation order."""
        cached = await self.cache.get(_locations_key(tenant_id))
        if cached is not None:
            return [GeofenceZone.model_validate(z) for z in cached]

        result = await self.db.execute(
            select(Location)
            .where(Location.tenant_id == tenant_id, Location.is_active.is_(True))
            .order_by(Location.created_at, Location.id)
        )
        zones = [GeofenceZone.model_validate(loc) for loc in result.scalars().all()]
        await self.cache.set(
            _locations_key(tenant_id), [z.model_dump() for z in zones], self.cache_ttl
        )
        return zones

    async def get_zone(self, location_id: str) -> GeofenceZone | None:
        result = await self.db.execute(select(Location).where(Location.id == location_id))
        location = result.scalar_one_or_none()
        return GeofenceZone.model_validate(location) if location else None

    async def invalidate_locations(self, tenant_id: str) -> None:
        await self.cache.delete(_locations_key(tenant_id))

    # ── Attendance ──────────────────────────────────────────────────
    async def get_attendance(self, attendance_id: str) -> AttendanceEvent | None:
        result = await self.db.execute(
            select(AttendanceEvent).where(AttendanceEvent.id == attendance_id)
        )
        return result.scalar_one_or_none()

    async def get_open_attendance(self, user_id: int) -> AttendanceEvent | None:
        """Most recently created OPEN event of the user."""
        result = await self.db.execute(
            select(AttendanceEvent)
            .where(
                AttendanceEvent.user_id == user_id,
                AttendanceEvent.status == AttendanceStatus.OPEN,
            )
            .order_by(AttendanceEvent.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_prior_with_gps(
        self, user_id: int, before: datetime, exclude_id: str | None = None
    ) -> AttendanceEvent | None:
        """Most recent event of the user strictly before ``before`` with GPS data."""
        query = select(AttendanceEvent).where(
            AttendanceEvent.user_id == user_id,
            AttendanceEvent.check_in_time < before,
            AttendanceEvent.check_in_lat.is_not(None),
            AttendanceEvent.check_in_lng.is_not(None),
        )
        if exclude_id is not None:
            query = query.where(AttendanceEvent.id != exclude_id)
        result = await self.db.execute(
            query.order_by(AttendanceEvent.check_in_time.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def add_attendance(self, event: AttendanceEvent) -> AttendanceEvent:
        self.db.add(event)
        await self.db.flush()
        return event

    async def attended_check_in_times(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[datetime]:
        """Check-in times of the user's valid attendances in [start, end)."""
        result = await self.db.execute(
            select(AttendanceEvent.check_in_time).where(
                AttendanceEvent.user_id == user_id,
                AttendanceEvent.is_valid.is_(True),
                AttendanceEvent.check_in_time >= start,
                AttendanceEvent.check_in_time < end,
            )
        )
        return list(result.scalars().all())

    async def count_awarded_check_ins(
        self, user_id: int, exclude_id: str, start: datetime, end: datetime
    ) -> int:
        """Other attendances in [start, end) that already earned points."""
        result = await self.db.execute(
            select(func.count(AttendanceEvent.id)).where(
                AttendanceEvent.user_id == user_id,
                AttendanceEvent.id != exclude_id,
                AttendanceEvent.check_in_time >= start,
                AttendanceEvent.check_in_time < end,
                AttendanceEvent.points_earned > 0,
            )
        )
        return int(result.scalar_one() or 0)

    # ── Point rules ─────────────────────────────────────────────────
    async def list_active_rules(self, tenant_id: str) -> list[PointRule]:
        result = await self.db.execute(
            select(PointRule)
            .where(PointRule.tenant_id == tenant_id, PointRule.is_active.is_(True))
            .order_by(PointRule.id)
        )
        return list(result.scalars().all())

    # ── Points ledger ───────────────────────────────────────────────
    async def append_ledger(
        self,
        user: User,
        amount: int,
        reference_type: str,
        reference_id: str | None,
        description: str,
    ) -> PointsLedgerEntry | None:
        """Append an ``earn`` entry and bump the balance in the same transaction."""
        if amount <= 0:
            return None

        result = await self.db.execute(
            update(User)
            .where(User.id == user.id)
            .values(points_balance=User.points_balance + amount)
            .returning(User.points_balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = int(result.scalar_one())
        set_committed_value(user, "points_balance", new_balance)

        entry = PointsLedgerEntry(
            user_id=user.id,
            transaction_type="earn",
            amount=amount,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
            balance_after=new_balance,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    # ── Transactions ────────────────────────────────────────────────
    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction for advisory reads.

        A statement that fails inside it is rolled back to the savepoint, so
        the surrounding check-in transaction stays usable on Postgres.
        """
        return self.db.begin_nested()
