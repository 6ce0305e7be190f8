"""
bizdir.db.repositories.showcase

Repository for showcase media: business photos and portfolio items with their photos.

Responsibilities:
- Append photos at the end of the current ordering (`sort_order` = max + 1).
- Load portfolio items with photos eagerly (async sessions cannot lazy-load).
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.models import BusinessPhoto, PortfolioItem, PortfolioPhoto


class ShowcaseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- Business photos ---------------------------------------------------------

    async def list_photos(self, business_id: uuid.UUID) -> list[BusinessPhoto]:
        stmt = (
            select(BusinessPhoto)
            .where(BusinessPhoto.business_id == business_id)
            .order_by(BusinessPhoto.sort_order, BusinessPhoto.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_photos(self, business_id: uuid.UUID) -> int:
        stmt = select(func.count(BusinessPhoto.id)).where(BusinessPhoto.business_id == business_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def add_photo(self, *, business_id: uuid.UUID, url: str) -> BusinessPhoto:
        stmt = select(func.max(BusinessPhoto.sort_order)).where(
            BusinessPhoto.business_id == business_id
        )
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        photo = BusinessPhoto(business_id=business_id, url=url, sort_order=(current or 0) + 1)
        self._session.add(photo)
        await self._session.flush()
        return photo

    async def get_photo(self, photo_id: uuid.UUID) -> BusinessPhoto | None:
        return await self._session.get(BusinessPhoto, photo_id)

    # --- Portfolio ---------------------------------------------------------------

    async def list_items(self, business_id: uuid.UUID) -> list[PortfolioItem]:
        stmt = (
            select(PortfolioItem)
            .where(PortfolioItem.business_id == business_id)
            .options(selectinload(PortfolioItem.photos))
            .order_by(PortfolioItem.sort_order, PortfolioItem.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_item(self, item_id: uuid.UUID) -> PortfolioItem | None:
        stmt = (
            select(PortfolioItem)
            .where(PortfolioItem.id == item_id)
            .options(selectinload(PortfolioItem.photos))
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create_item(self, *, business_id: uuid.UUID, comment: str | None) -> PortfolioItem:
        stmt = select(func.max(PortfolioItem.sort_order)).where(
            PortfolioItem.business_id == business_id
        )
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        item = PortfolioItem(
            business_id=business_id, comment=comment, sort_order=(current or 0) + 1, photos=[]
        )
        self._session.add(item)
        await self._session.flush()
        return item

    async def add_item_photos(self, item: PortfolioItem, urls: list[str]) -> list[PortfolioPhoto]:
        next_order = max((p.sort_order for p in item.photos), default=0) + 1
        added: list[PortfolioPhoto] = []
        for offset, url in enumerate(urls):
            photo = PortfolioPhoto(item_id=item.id, url=url, sort_order=next_order + offset)
            item.photos.append(photo)
            added.append(photo)
        await self._session.flush()
        return added

    async def delete(self, obj: object) -> None:
        await self._session.delete(obj)
        await self._session.flush()
