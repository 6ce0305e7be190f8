"""
bizdir.db.repositories.requests

Repositories for customer requests (`Request`) and partner purchase requests
(`IncomingRequest`).
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.models import (
    IncomingRequest,
    IncomingRequestItem,
    Request,
    RequestStatus,
)


class RequestRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        business_id: uuid.UUID,
        title: str,
        description: str | None,
        client_name: str | None = None,
        client_email: str | None = None,
        client_phone: str | None = None,
        source: str = "ai_chat",
    ) -> Request:
        req = Request(
            business_id=business_id,
            title=title,
            description=description,
            client_name=client_name,
            client_email=client_email,
            client_phone=client_phone,
            source=source,
            status=RequestStatus.new,
        )
        self._session.add(req)
        await self._session.flush()
        return req

    async def get(self, request_id: uuid.UUID) -> Request | None:
        return await self._session.get(Request, request_id)

    async def latest_for_business(self, business_id: uuid.UUID) -> Request | None:
        stmt = (
            select(Request)
            .where(Request.business_id == business_id)
            .order_by(desc(Request.created_at))
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_business(self, business_id: uuid.UUID) -> list[Request]:
        stmt = (
            select(Request)
            .where(Request.business_id == business_id)
            .order_by(desc(Request.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())


class IncomingRequestRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        sender_business_id: uuid.UUID,
        recipient_business_id: uuid.UUID,
        category: str | None,
        total: Decimal | None,
        items: list[IncomingRequestItem],
    ) -> IncomingRequest:
        incoming = IncomingRequest(
            sender_business_id=sender_business_id,
            recipient_business_id=recipient_business_id,
            category=category,
            total=total,
            status=RequestStatus.new,
            items=items,
        )
        self._session.add(incoming)
        await self._session.flush()
        return incoming

    async def get(self, request_id: uuid.UUID) -> IncomingRequest | None:
        return await self._session.get(IncomingRequest, request_id)

    async def list_for_recipient(self, business_id: uuid.UUID) -> list[IncomingRequest]:
        stmt = (
            select(IncomingRequest)
            .where(IncomingRequest.recipient_business_id == business_id)
            .options(selectinload(IncomingRequest.items), selectinload(IncomingRequest.sender))
            .order_by(desc(IncomingRequest.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())
