"""
bizdir.api.routers.directory

Public directory surface.

Responsibilities:
- List ACTIVE businesses with search/city/category filters.
- Serve the public showcase of an ACTIVE business by slug.
- Expose the category directory.
- Accept customer inquiries and open picker invite links.
- Let residents open additional (DRAFT) businesses.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from bizdir.api.deps import db_session
from bizdir.api.schemas import (
    BusinessOut,
    CategoryOut,
    PhotoOut,
    ProfileOut,
    PublicBusinessOut,
    RequestOut,
)
from bizdir.auth.deps import require_roles
from bizdir.auth.models import Principal
from bizdir.db.models import CategoryType, UserRole
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.categories import CategoryRepo
from bizdir.db.repositories.pickers import PickerRepo
from bizdir.db.repositories.requests import RequestRepo
from bizdir.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["directory"])

SHOWCASE_PHOTOS_PER_ITEM = 12


class BusinessCreateRequest(BaseModel):
    name: str | None = None
    city: str | None = None
    category: str | None = None
    description: str | None = None


class PublicRequestCreate(BaseModel):
    business_id: uuid.UUID | None = None
    title: str | None = None
    description: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    source: str | None = None


@router.get("/businesses", response_model=list[PublicBusinessOut])
async def list_businesses(
    search: str | None = None,
    city: str | None = None,
    category: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> list[PublicBusinessOut]:
    businesses = await BusinessRepo(session).list_public(
        search=(search or "").strip() or None, city=city or None, category=category or None
    )
    return [PublicBusinessOut.model_validate(b) for b in businesses]


@router.post("/businesses", response_model=BusinessOut, status_code=HTTP_201_CREATED)
async def create_business(
    body: BusinessCreateRequest,
    principal: Principal = Depends(require_roles(UserRole.business_owner.value)),
    session: AsyncSession = Depends(db_session),
) -> BusinessOut:
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Business name is required")
    business = await BusinessRepo(session).create(
        owner_id=principal.user_id,
        name=name,
        city=body.city or None,
        category=body.category or None,
        description=body.description or None,
    )
    await session.commit()
    log.info("business_created", business_id=str(business.id), slug=business.slug)
    return BusinessOut.model_validate(business)


@router.get("/showcase/{slug}")
async def get_showcase(slug: str, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    business = await BusinessRepo(session).get_public_showcase(slug)
    if business is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")

    return {
        "business": PublicBusinessOut.model_validate(business).model_dump(mode="json"),
        "profile": (
            ProfileOut.model_validate(business.profile).model_dump(mode="json")
            if business.profile is not None
            else None
        ),
        "photos": [PhotoOut.model_validate(p).model_dump(mode="json") for p in business.photos],
        "portfolio_items": [
            {
                "id": str(item.id),
                "comment": item.comment,
                "cover_url": item.cover_url,
                "photos": [
                    PhotoOut.model_validate(p).model_dump(mode="json") for p in item.photos[:SHOWCASE_PHOTOS_PER_ITEM]
                ],
            }
            for item in business.portfolio_items
        ],
    }


@router.get("/categories", response_model=list[CategoryOut])
async def list_categories(
    type: str = Query(default="PRICE"),
    session: AsyncSession = Depends(db_session),
) -> list[CategoryOut]:
    try:
        category_type = CategoryType((type or "PRICE").upper())
    except ValueError as e:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="Invalid type. Use PRICE or BUSINESS."
        ) from e
    return [CategoryOut.model_validate(c) for c in await CategoryRepo(session).list_by_type(category_type)]


@router.post("/requests", response_model=RequestOut, status_code=HTTP_201_CREATED)
async def create_public_request(
    body: PublicRequestCreate,
    session: AsyncSession = Depends(db_session),
) -> RequestOut:
    if body.business_id is None or not body.title or not body.description:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail="business_id, title and description are required",
        )
    if await BusinessRepo(session).get(body.business_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")

    req = await RequestRepo(session).create(
        business_id=body.business_id,
        title=body.title,
        description=body.description,
        client_name=body.client_name,
        client_email=body.client_email,
        client_phone=body.client_phone,
        source=body.source or "ai_chat",
    )
    await session.commit()
    log.info("customer_request_created", request_id=str(req.id), business_id=str(req.business_id))
    return RequestOut.model_validate(req)


@router.get("/picker/invites/{token}")
async def open_picker_invite(
    token: str,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    pickers = PickerRepo(session)
    invite = await pickers.get_invite_by_token(token)
    if invite is None or invite.revoked_at is not None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Invite not found")

    await pickers.mark_used(invite)
    req = await RequestRepo(session).get(invite.request_id)
    if req is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Invite not found")
    business = await BusinessRepo(session).get(req.business_id)
    await session.commit()

    return {
        "label": invite.label,
        "used_at": invite.used_at.isoformat() if invite.used_at else None,
        "request": {
            "id": str(req.id),
            "title": req.title,
            "description": req.description,
            "status": req.status.value,
            "created_at": req.created_at.isoformat(),
        },
        "business": {"id": str(business.id), "name": business.name} if business else None,
    }
