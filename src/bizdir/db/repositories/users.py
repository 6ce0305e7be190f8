"""
bizdir.db.repositories.users

Repository for platform accounts (`User`).

Responsibilities:
- Create users and look them up by id or by normalized email.
- Eager-load owned businesses for login and token refresh.
- Count accounts for admin metrics and update password hashes.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.models import User, UserRole


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self, *, email: str, password_hash: str, role: UserRole, name: str | None = None
    ) -> User:
        user = User(email=normalize_email(email), password_hash=password_hash, role=role, name=name)
        self._session.add(user)
        await self._session.flush()
        return user

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_with_businesses(self, user_id: uuid.UUID) -> User | None:
        stmt = select(User).where(User.id == user_id).options(selectinload(User.businesses))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        stmt = (
            select(User)
            .where(User.email == normalize_email(email))
            .options(selectinload(User.businesses))
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def count(self) -> int:
        return (await self._session.execute(select(func.count(User.id)))).scalar_one()

    async def set_password_hash(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# Emails are stored lowercased and trimmed; every lookup normalizes the same way.
