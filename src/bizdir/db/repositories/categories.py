from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import Category, CategoryType


class CategoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_type(self, type_: CategoryType) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.type == type_)
            .order_by(Category.sort_order, Category.name)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def create(self, *, type_: CategoryType, name: str, sort_order: int = 0) -> Category:
        category = Category(type=type_, name=name, sort_order=sort_order)
        self._session.add(category)
        await self._session.flush()
        return category
