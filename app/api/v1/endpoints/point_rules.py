"""
Point rule management — admin CRUD over the tenant's scoring rules.

Conditions are validated against the rule type on every write; deleting a
rule deactivates it so past awards stay explainable.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_db, require_admin
from app.models.point_rule import PointRule
from app.models.user import User
from app.schemas.attendance import DeleteResponse
from app.schemas.point_rule import (PointRuleCreate, PointRuleRead, PointRuleUpdate,
                                    point_rule_adapter)

router = APIRouter(prefix="/point-rules", tags=["point-rules"])
logger = logging.getLogger(__name__)


async def _get_tenant_rule(db: AsyncSession, rule_id: int, tenant_id: str) -> PointRule:
    result = await db.execute(
        select(PointRule).where(PointRule.id == rule_id, PointRule.tenant_id == tenant_id)
    )
    rule = result.scalar_one_or_none()
    if rule is None:
        raise HTTPException(status_code=404, detail="Point rule not found")
    return rule


@router.get("", response_model=list[PointRuleRead])
async def list_rules(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> list[PointRule]:
    result = await db.execute(
        select(PointRule)
        .where(PointRule.tenant_id == admin.tenant_id)
        .order_by(PointRule.rule_type, PointRule.name)
    )
    return list(result.scalars().all())


@router.post("", response_model=PointRuleRead, status_code=201)
async def create_rule(
    body: PointRuleCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PointRule:
    validated = body.root
    rule = PointRule(
        tenant_id=admin.tenant_id,
        name=validated.name,
        rule_type=validated.rule_type,
        points_amount=validated.points_amount,
        conditions=validated.conditions.model_dump(),
        is_active=validated.is_active,
    )
    db.add(rule)
    await db.commit()
    await db.refresh(rule)
    logger.info("Point rule %s (%s) created for tenant %s", rule.id, rule.rule_type, admin.tenant_id)
    return rule


@router.put("/{rule_id}", response_model=PointRuleRead)
async def update_rule(
    rule_id: int,
    body: PointRuleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> PointRule:
    rule = await _get_tenant_rule(db, rule_id, admin.tenant_id)

    merged = {
        "name": rule.name,
        "rule_type": rule.rule_type,
        "points_amount": rule.points_amount,
        "conditions": rule.conditions,
        "is_active": rule.is_active,
        **body.model_dump(exclude_unset=True),
    }
    try:
        validated = point_rule_adapter.validate_python(merged)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )

    rule.name = validated.name
    rule.points_amount = validated.points_amount
    rule.conditions = validated.conditions.model_dump()
    rule.is_active = validated.is_active

    await db.commit()
    await db.refresh(rule)
    logger.info("Point rule %s updated", rule_id)
    return rule


@router.delete("/{rule_id}", response_model=DeleteResponse)
async def deactivate_rule(
    rule_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> DeleteResponse:
    rule = await _get_tenant_rule(db, rule_id, admin.tenant_id)
    rule.is_active = False
    await db.commit()
    logger.info("Point rule %s deactivated", rule_id)
    return DeleteResponse(success=True, message="Point rule deactivated")
