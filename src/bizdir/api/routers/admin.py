"""
bizdir.api.routers.admin

Platform administration (ADMIN role only).

Responsibilities:
- Review the latest tenants and activate them for the public directory.
- Report aggregate platform metrics.
- Maintain the category directory.
- Curate the agent playbook (platform-wide and per-business moves).
- Diagnose the AI gateway.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from bizdir.ai_gateway.client import AiGatewayClient
from bizdir.api.deps import ai_gateway_dep, db_session
from bizdir.api.schemas import BusinessOut, CategoryOut, PlaybookItemOut
from bizdir.auth.deps import require_roles
from bizdir.auth.models import Principal
from bizdir.db.models import (
    CategoryType,
    LifecycleStatus,
    PlaybookConfidence,
    PlaybookScope,
    UserRole,
)
from bizdir.db.repositories.audit import AuditRepo
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.categories import CategoryRepo
from bizdir.db.repositories.playbook import PlaybookRepo
from bizdir.db.repositories.users import UserRepo
from bizdir.observability.logging import get_logger

log = get_logger(__name__)

admin_only = require_roles(UserRole.admin.value)

router = APIRouter(prefix="/v1/admin", tags=["admin"], dependencies=[Depends(admin_only)])

ADMIN_LIST_LIMIT = 50


class CategoryCreate(BaseModel):
    type: CategoryType
    name: str = Field(min_length=1, max_length=256)
    sort_order: int = 0


class PlaybookItemCreate(BaseModel):
    scope: PlaybookScope
    business_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=256)
    move: str = Field(min_length=1)
    context: str | None = None
    outcome: str | None = None
    confidence: PlaybookConfidence
    tags: list[str] = Field(default_factory=list)


@router.get("/businesses", response_model=list[BusinessOut])
async def list_businesses(session: AsyncSession = Depends(db_session)) -> list[BusinessOut]:
    businesses = await BusinessRepo(session).latest(limit=ADMIN_LIST_LIMIT)
    return [BusinessOut.model_validate(b) for b in businesses]


@router.post("/businesses/{business_id}/activate", response_model=BusinessOut)
async def activate_business(
    business_id: uuid.UUID,
    principal: Principal = Depends(admin_only),
    session: AsyncSession = Depends(db_session),
) -> BusinessOut:
    repo = BusinessRepo(session)
    business = await repo.get(business_id)
    if business is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")

    await repo.set_lifecycle(business, LifecycleStatus.active)
    await AuditRepo(session).add(
        user_id=principal.user_id,
        action="BUSINESS_ACTIVATED",
        details={"business_id": str(business.id), "slug": business.slug},
    )
    await session.commit()
    log.info("business_activated", business_id=str(business.id))
    return BusinessOut.model_validate(business)


@router.get("/metrics")
async def metrics(session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    businesses = BusinessRepo(session)
    total = await businesses.count()
    active = await businesses.count(lifecycle_status=LifecycleStatus.active)
    return {
        "generated_at": datetime.now(tz=UTC).isoformat(),
        "businesses": {"total": total, "active": active, "inactive": total - active},
        "users": {"total": await UserRepo(session).count()},
    }


@router.post("/categories", response_model=CategoryOut, status_code=HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate, session: AsyncSession = Depends(db_session)
) -> CategoryOut:
    category = await CategoryRepo(session).create(
        type_=body.type, name=body.name.strip(), sort_order=body.sort_order
    )
    await session.commit()
    return CategoryOut.model_validate(category)


@router.get("/ai/health")
async def ai_health(gateway: AiGatewayClient = Depends(ai_gateway_dep)) -> dict[str, Any]:
    return await gateway.health()


@router.get("/agent-playbook", response_model=list[PlaybookItemOut])
async def list_playbook(
    scope: PlaybookScope | None = None,
    business_id: uuid.UUID | None = None,
    tag: str | None = None,
    q: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> list[PlaybookItemOut]:
    items = await PlaybookRepo(session).search(
        scope=scope, business_id=business_id, tag=tag, q=(q or "").strip() or None
    )
    return [PlaybookItemOut.model_validate(i) for i in items]


@router.post("/agent-playbook", response_model=PlaybookItemOut, status_code=HTTP_201_CREATED)
async def create_playbook_item(
    body: PlaybookItemCreate,
    principal: Principal = Depends(admin_only),
    session: AsyncSession = Depends(db_session),
) -> PlaybookItemOut:
    title = body.title.strip()
    move = body.move.strip()
    if not title or not move:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="title and move are required")

    if body.scope == PlaybookScope.business:
        if body.business_id is None:
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST,
                detail="business_id is required when scope is BUSINESS",
            )
        if await BusinessRepo(session).get(body.business_id) is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")
    elif body.business_id is not None:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail="business_id must be empty when scope is PLATFORM",
        )

    item = await PlaybookRepo(session).create(
        scope=body.scope,
        business_id=body.business_id,
        title=title,
        move=move,
        context=(body.context or "").strip() or None,
        outcome=(body.outcome or "").strip() or None,
        confidence=body.confidence,
        tags=[t.strip() for t in body.tags if t.strip()],
    )
    await AuditRepo(session).add(
        user_id=principal.user_id,
        action="AGENT_PLAYBOOK_ITEM_CREATED",
        details={"item_id": str(item.id), "scope": item.scope.value, "title": item.title},
    )
    await session.commit()
    log.info("playbook_item_created", item_id=str(item.id), scope=item.scope.value)
    return PlaybookItemOut.model_validate(item)
