"""
Points endpoints — the caller's balance and ledger history.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_current_active_user, get_db
from app.models.points_ledger import PointsLedgerEntry
from app.models.user import User
from app.schemas.points import LedgerEntryRead, PointsBalanceResponse

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/balance", response_model=PointsBalanceResponse)
async def points_balance(
    user: User = Depends(get_current_active_user),
) -> PointsBalanceResponse:
    return PointsBalanceResponse(user_id=user.id, balance=user.points_balance or 0)


@router.get("/history", response_model=list[LedgerEntryRead])
async def points_history(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_active_user),
) -> list[PointsLedgerEntry]:
    """Ledger entries of the caller, newest first."""
    result = await db.execute(
        select(PointsLedgerEntry)
        .where(PointsLedgerEntry.user_id == user.id)
        .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())
