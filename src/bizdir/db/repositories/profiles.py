"""
bizdir.db.repositories.profiles

Repository for `BusinessProfile` entities (showcase card + resident number).
"""

from __future__ import annotations

import secrets
import string
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import BusinessProfile

RESIDENT_PREFIX = "L7-"
_RESIDENT_ALPHABET = string.ascii_uppercase + string.digits


def random_resident_number() -> str:
    return RESIDENT_PREFIX + "".join(secrets.choice(_RESIDENT_ALPHABET) for _ in range(8))


class ProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for_business(self, business_id: uuid.UUID) -> BusinessProfile | None:
        stmt = select(BusinessProfile).where(BusinessProfile.business_id == business_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_by_resident_number(self, resident_number: str) -> BusinessProfile | None:
        stmt = select(BusinessProfile).where(BusinessProfile.resident_number == resident_number)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _free_resident_number(self) -> str:
        while True:
            candidate = random_resident_number()
            if await self.get_by_resident_number(candidate) is None:
                return candidate

    async def get_or_create(self, business_id: uuid.UUID) -> BusinessProfile:
        profile = await self.get_for_business(business_id)
        if profile is not None:
            return profile
        profile = BusinessProfile(
            business_id=business_id,
            resident_number=await self._free_resident_number(),
            stats_cases=40,
            stats_projects=2578,
            stats_cities=4,
            cities=[],
            services=[],
        )
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def by_business_ids(self, business_ids: list[uuid.UUID]) -> dict[uuid.UUID, BusinessProfile]:
        if not business_ids:
            return {}
        stmt = select(BusinessProfile).where(BusinessProfile.business_id.in_(business_ids))
        return {p.business_id: p for p in (await self._session.execute(stmt)).scalars().all()}
