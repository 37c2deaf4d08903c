"""
Points ledger — append-only log backing ``users.points_balance``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class PointsLedgerEntry(Base):
    __tablename__ = "points_ledger"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    transaction_type: str = Column(String(20), nullable=False, default="earn")  # type: ignore[assignment]
    amount: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    reference_type: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    reference_id: str | None = Column(String(36), nullable=True)  # type: ignore[assignment]
    description: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    balance_after: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
