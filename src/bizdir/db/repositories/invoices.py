"""
bizdir.db.repositories.invoices

Repository for business invoices.

Responsibilities:
- List a business's invoices, newest first.
- Count invoices per business (feeds the next invoice number).
- Create DRAFT invoices.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import Invoice, InvoiceStatus


class InvoiceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_business(self, business_id: uuid.UUID) -> list[Invoice]:
        stmt = (
            select(Invoice)
            .where(Invoice.business_id == business_id)
            .order_by(desc(Invoice.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_for_business(self, business_id: uuid.UUID) -> int:
        stmt = select(func.count(Invoice.id)).where(Invoice.business_id == business_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def create(
        self,
        *,
        business_id: uuid.UUID,
        number: str,
        client_name: str,
        amount: Decimal,
        currency: str,
        client_email: str | None = None,
        client_phone: str | None = None,
        due_date: datetime | None = None,
        request_id: uuid.UUID | None = None,
    ) -> Invoice:
        invoice = Invoice(
            business_id=business_id,
            number=number,
            client_name=client_name,
            client_email=client_email,
            client_phone=client_phone,
            amount=amount,
            currency=currency,
            status=InvoiceStatus.draft,
            due_date=due_date,
            request_id=request_id,
        )
        self._session.add(invoice)
        await self._session.flush()
        return invoice


# --- Module Notes -----------------------------------------------------------
# Invoice numbers are unique per business only; a racing duplicate surfaces as
# IntegrityError and the API answers 409.
