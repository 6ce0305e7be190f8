"""
bizdir.db.repositories.businesses

Repository for `Business` entities.

Responsibilities:
- Create businesses with a slug that is unique across the platform.
- Serve the public directory query (active tenants only) and owner/admin listings.
- Provide aggregate counts for admin metrics.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.models import (
    BillingStatus,
    Business,
    LifecycleStatus,
    PortfolioItem,
)
from bizdir.services.slugs import generate_slug

PUBLIC_LIST_LIMIT = 100


class BusinessRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(Business.id).where(Business.slug == slug).limit(1)
        return (await self._session.execute(stmt)).first() is not None

    async def unique_slug(self, name: str) -> str:
        base = generate_slug(name)
        slug = base
        counter = 1
        while await self.slug_exists(slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    async def create(
        self,
        *,
        owner_id: uuid.UUID,
        name: str,
        city: str | None = None,
        category: str | None = None,
        description: str | None = None,
    ) -> Business:
        # New tenants stay invisible in the directory until an admin activates them.
        business = Business(
            owner_id=owner_id,
            name=name,
            slug=await self.unique_slug(name),
            city=city,
            category=category,
            description=description,
            lifecycle_status=LifecycleStatus.draft,
            billing_status=BillingStatus.unpaid,
        )
        self._session.add(business)
        await self._session.flush()
        return business

    async def get(self, business_id: uuid.UUID) -> Business | None:
        return await self._session.get(Business, business_id)

    async def get_public_showcase(self, slug: str) -> Business | None:
        stmt = (
            select(Business)
            .where(Business.slug == slug, Business.lifecycle_status == LifecycleStatus.active)
            .options(
                selectinload(Business.profile),
                selectinload(Business.photos),
                selectinload(Business.portfolio_items).selectinload(PortfolioItem.photos),
            )
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_public(
        self,
        *,
        search: str | None = None,
        city: str | None = None,
        category: str | None = None,
    ) -> list[Business]:
        stmt = select(Business).where(Business.lifecycle_status == LifecycleStatus.active)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Business.name).like(pattern),
                    func.lower(Business.city).like(pattern),
                    func.lower(Business.category).like(pattern),
                )
            )
        if city:
            stmt = stmt.where(Business.city == city)
        if category:
            stmt = stmt.where(Business.category == category)
        stmt = stmt.order_by(desc(Business.created_at)).limit(PUBLIC_LIST_LIMIT)
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_owner(self, owner_id: uuid.UUID | None) -> list[Business]:
        # owner_id=None lists every tenant (admin view).
        stmt = select(Business).order_by(desc(Business.created_at))
        if owner_id is not None:
            stmt = stmt.where(Business.owner_id == owner_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def latest(self, *, limit: int = 50) -> list[Business]:
        stmt = select(Business).order_by(desc(Business.created_at)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self, *, lifecycle_status: LifecycleStatus | None = None) -> int:
        stmt = select(func.count(Business.id))
        if lifecycle_status is not None:
            stmt = stmt.where(Business.lifecycle_status == lifecycle_status)
        return (await self._session.execute(stmt)).scalar_one()

    async def set_lifecycle(self, business: Business, status: LifecycleStatus) -> None:
        business.lifecycle_status = status
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# Slug uniqueness is probed before insert; the unique index still guards races.
