"""
bizdir.db.repositories.price_lists

Repositories for price lists and partner assignments.

Responsibilities:
- Create/replace/delete price lists together with their rows.
- Maintain the partner links (`PriceAssignment`) between a supplier's price list and a
  counterparty business, including the PENDING -> ACTIVE/DECLINED lifecycle.
- Load the ACTIVE offers a business can compare across suppliers.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.base import utcnow
from bizdir.db.models import (
    Business,
    ModifierType,
    PartnerLinkStatus,
    PriceAssignment,
    PriceList,
    PriceListKind,
    PriceListRow,
)


class PriceListRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_business(self, business_id: uuid.UUID) -> list[PriceList]:
        stmt = (
            select(PriceList)
            .where(PriceList.business_id == business_id)
            .options(selectinload(PriceList.rows), selectinload(PriceList.assignments))
            .order_by(PriceList.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_detail(self, price_list_id: uuid.UUID) -> PriceList | None:
        stmt = (
            select(PriceList)
            .where(PriceList.id == price_list_id)
            .options(
                selectinload(PriceList.rows),
                selectinload(PriceList.assignments)
                .selectinload(PriceAssignment.counterparty_business)
                .selectinload(Business.profile),
            )
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        *,
        business_id: uuid.UUID,
        name: str,
        kind: PriceListKind,
        rows: list[PriceListRow],
        category: str | None = None,
        derived_from_id: uuid.UUID | None = None,
        modifier_type: ModifierType | None = None,
        percent: Decimal | None = None,
        columns: list[dict[str, Any]] | None = None,
    ) -> PriceList:
        price_list = PriceList(
            business_id=business_id,
            name=name,
            kind=kind,
            category=category,
            derived_from_id=derived_from_id,
            modifier_type=modifier_type,
            percent=percent,
            columns=columns,
            rows=rows,
            assignments=[],
        )
        self._session.add(price_list)
        await self._session.flush()
        return price_list

    async def replace_rows(self, price_list: PriceList, rows: list[PriceListRow]) -> None:
        # delete-orphan drops the previous rows on flush.
        price_list.rows = rows
        price_list.updated_at = utcnow()
        await self._session.flush()

    async def delete(self, price_list: PriceList) -> None:
        await self._session.delete(price_list)
        await self._session.flush()


class AssignmentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, link_id: uuid.UUID) -> PriceAssignment | None:
        stmt = (
            select(PriceAssignment)
            .where(PriceAssignment.id == link_id)
            .options(selectinload(PriceAssignment.price_list))
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def upsert_pending(
        self, *, price_list_id: uuid.UUID, counterparty_business_id: uuid.UUID
    ) -> PriceAssignment:
        # Re-assigning resets the link so the counterparty has to accept again.
        stmt = select(PriceAssignment).where(
            PriceAssignment.price_list_id == price_list_id,
            PriceAssignment.counterparty_business_id == counterparty_business_id,
        )
        link = (await self._session.execute(stmt)).scalar_one_or_none()
        if link is None:
            link = PriceAssignment(
                price_list_id=price_list_id,
                counterparty_business_id=counterparty_business_id,
                status=PartnerLinkStatus.pending,
            )
            self._session.add(link)
        else:
            link.status = PartnerLinkStatus.pending
            link.responded_at = None
        await self._session.flush()
        return link

    async def remove(self, *, price_list_id: uuid.UUID, counterparty_business_id: uuid.UUID) -> bool:
        stmt = select(PriceAssignment).where(
            PriceAssignment.price_list_id == price_list_id,
            PriceAssignment.counterparty_business_id == counterparty_business_id,
        )
        link = (await self._session.execute(stmt)).scalar_one_or_none()
        if link is None:
            return False
        await self._session.delete(link)
        await self._session.flush()
        return True

    async def list_for_price_list(self, price_list_id: uuid.UUID) -> list[PriceAssignment]:
        stmt = (
            select(PriceAssignment)
            .where(PriceAssignment.price_list_id == price_list_id)
            .options(
                selectinload(PriceAssignment.counterparty_business).selectinload(Business.profile)
            )
            .order_by(PriceAssignment.created_at)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def addressed_to(
        self, business_id: uuid.UUID, *, status: PartnerLinkStatus | None = None
    ) -> list[PriceAssignment]:
        """
        Links where `business_id` is the counterparty (the buyer side), newest first.
        Supplier business, its profile and the price rows are loaded eagerly.
        """

        stmt = (
            select(PriceAssignment)
            .where(PriceAssignment.counterparty_business_id == business_id)
            .options(
                selectinload(PriceAssignment.price_list).selectinload(PriceList.rows),
                selectinload(PriceAssignment.price_list)
                .selectinload(PriceList.business)
                .selectinload(Business.profile),
            )
            .order_by(desc(PriceAssignment.created_at))
        )
        if status is not None:
            stmt = stmt.where(PriceAssignment.status == status)
        return list((await self._session.execute(stmt)).scalars().all())

    async def respond(self, link: PriceAssignment, status: PartnerLinkStatus) -> None:
        link.status = status
        link.responded_at = utcnow()
        await self._session.flush()

    async def decline_active_between(self, a: uuid.UUID, b: uuid.UUID) -> int:
        stmt = (
            select(PriceAssignment)
            .join(PriceList, PriceList.id == PriceAssignment.price_list_id)
            .where(
                PriceAssignment.status == PartnerLinkStatus.active,
                or_(
                    and_(PriceList.business_id == a, PriceAssignment.counterparty_business_id == b),
                    and_(PriceList.business_id == b, PriceAssignment.counterparty_business_id == a),
                ),
            )
        )
        links = list((await self._session.execute(stmt)).scalars().all())
        now = utcnow()
        for link in links:
            link.status = PartnerLinkStatus.declined
            link.responded_at = now
        await self._session.flush()
        return len(links)


# --- Module Notes -----------------------------------------------------------
# A PriceAssignment points from the supplier's list to the buyer (counterparty) business.
