"""
Point rule schemas — a tagged union keyed by ``rule_type``.

Each variant carries its own typed conditions, so a malformed rule is
rejected when it is written and skipped (logged) when it is loaded for
evaluation, never half-applied.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, RootModel, TypeAdapter, field_validator

_DEADLINE_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


# ── Conditions ──────────────────────────────────────────────────────
class CheckInConditions(BaseModel):
    model_config = {"extra": "ignore"}


class OnTimeConditions(BaseModel):
    deadline: str = "09:00:00"

    @field_validator("deadline")
    @classmethod
    def _deadline(cls, v: str) -> str:
        v = v.strip()
        if not _DEADLINE_RE.match(v):
            raise ValueError("deadline must be HH:MM or HH:MM:SS")
        # Zero-padded HH:MM:SS so plain string comparison orders correctly
        return v if len(v) == 8 else f"{v}:00"


class StreakConditions(BaseModel):
    days: int = Field(default=5, ge=1, le=366)


class FullDayConditions(BaseModel):
    hours: float = Field(default=8, gt=0, le=24)
    max_hours: float | None = Field(default=None, gt=0)


# ── Rule variants ───────────────────────────────────────────────────
class _RuleBase(BaseModel):
    id: int | None = None
    name: str = Field(min_length=1, max_length=200)
    points_amount: int = Field(ge=0)
    is_active: bool = True

    @field_validator("conditions", mode="before", check_fields=False)
    @classmethod
    def _load_conditions(cls, v: object) -> object:
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v


class CheckInRule(_RuleBase):
    rule_type: Literal["check_in"]
    conditions: CheckInConditions = Field(default_factory=CheckInConditions)


class OnTimeRule(_RuleBase):
    rule_type: Literal["on_time"]
    conditions: OnTimeConditions = Field(default_factory=OnTimeConditions)


class StreakRule(_RuleBase):
    rule_type: Literal["streak"]
    conditions: StreakConditions = Field(default_factory=StreakConditions)


class FullDayRule(_RuleBase):
    rule_type: Literal["full_day"]
    conditions: FullDayConditions = Field(default_factory=FullDayConditions)


PointRuleVariant = Annotated[
    Union[CheckInRule, OnTimeRule, StreakRule, FullDayRule],
    Field(discriminator="rule_type"),
]

point_rule_adapter: TypeAdapter[PointRuleVariant] = TypeAdapter(PointRuleVariant)


# ── API payloads ────────────────────────────────────────────────────
class PointRuleCreate(RootModel[PointRuleVariant]):
    """Request body for a new rule; ``root`` is the validated variant."""


class PointRuleUpdate(BaseModel):
    name: str | None = None
    points_amount: int | None = Field(default=None, ge=0)
    conditions: dict | None = None
    is_active: bool | None = None


class PointRuleRead(BaseModel):
    id: int
    tenant_id: str
    name: str
    rule_type: str
    points_amount: int
    conditions: dict | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}
