"""
bizdir.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create tables for local development and tests.
- Seed the default category directory when it is empty.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from bizdir.db import models  # noqa: F401  # register models on Base.metadata
from bizdir.db.base import Base
from bizdir.db.models import Category, CategoryType

DEFAULT_PRICE_CATEGORY = "Fresh produce"

_DEFAULT_CATEGORIES: tuple[tuple[CategoryType, str], ...] = (
    (CategoryType.price, DEFAULT_PRICE_CATEGORY),
    (CategoryType.price, "Dairy"),
    (CategoryType.price, "Meat and poultry"),
    (CategoryType.price, "Bakery"),
    (CategoryType.price, "Beverages"),
    (CategoryType.business, "Construction and repair"),
    (CategoryType.business, "Food and catering"),
    (CategoryType.business, "Beauty and health"),
    (CategoryType.business, "Education"),
    (CategoryType.business, "Wholesale"),
)


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    Production should rely on Alembic migrations.
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    async with session_factory() as session:
        existing = (await session.execute(select(func.count(Category.id)))).scalar_one()
        if existing:
            return
        for order, (type_, name) in enumerate(_DEFAULT_CATEGORIES):
            session.add(Category(type=type_, name=name, sort_order=order))
        await session.commit()


# --- Module Notes -----------------------------------------------------------
# Not used for prod. Production workflows run Alembic migrations on deploy.
