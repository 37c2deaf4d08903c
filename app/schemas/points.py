"""Pydantic schemas for the points balance and ledger."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PointsBalanceResponse(BaseModel):
    user_id: int
    balance: int


class LedgerEntryRead(BaseModel):
    id: int
    transaction_type: str
    amount: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    balance_after: int
    created_at: datetime | None

    model_config = {"from_attributes": True}
