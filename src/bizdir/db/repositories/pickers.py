"""
bizdir.db.repositories.pickers

Repository for picker invites and the request-level PICKER assignment.

Responsibilities:
- Issue invite tokens and look them up for the public invite page.
- Read/write the single PICKER `RequestAssignment` per request.
- List live (non-revoked) picker assignments of a business.
"""

from __future__ import annotations

import secrets
import uuid

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bizdir.db.base import utcnow
from bizdir.db.models import (
    AssignmentRole,
    PickerInvite,
    Request,
    RequestAssignment,
)

TOKEN_BYTES = 24


class PickerRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_invite(
        self, *, request_id: uuid.UUID, label: str, created_by_user_id: uuid.UUID | None
    ) -> PickerInvite:
        invite = PickerInvite(
            token=secrets.token_hex(TOKEN_BYTES),
            label=label,
            request_id=request_id,
            created_by_user_id=created_by_user_id,
        )
        self._session.add(invite)
        await self._session.flush()
        return invite

    async def get_invite_by_token(self, token: str) -> PickerInvite | None:
        stmt = select(PickerInvite).where(PickerInvite.token == token)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_assignment(
        self, request_id: uuid.UUID, role: AssignmentRole = AssignmentRole.picker
    ) -> RequestAssignment | None:
        stmt = (
            select(RequestAssignment)
            .where(RequestAssignment.request_id == request_id, RequestAssignment.role == role)
            .options(selectinload(RequestAssignment.invite))
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create_assignment(
        self,
        *,
        request_id: uuid.UUID,
        invite: PickerInvite,
        created_by_user_id: uuid.UUID | None,
    ) -> RequestAssignment:
        assignment = RequestAssignment(
            request_id=request_id,
            role=AssignmentRole.picker,
            created_by_user_id=created_by_user_id,
            invite_id=invite.id,
            invite=invite,
        )
        self._session.add(assignment)
        await self._session.flush()
        return assignment

    async def live_for_business(self, business_id: uuid.UUID) -> list[RequestAssignment]:
        # Newest invite first, so a rebound slot counts as recent; revoked or missing
        # invites are not "live".
        stmt = (
            select(RequestAssignment)
            .join(Request, Request.id == RequestAssignment.request_id)
            .join(PickerInvite, PickerInvite.id == RequestAssignment.invite_id)
            .where(
                Request.business_id == business_id,
                RequestAssignment.role == AssignmentRole.picker,
                PickerInvite.revoked_at.is_(None),
            )
            .options(selectinload(RequestAssignment.invite))
            .order_by(desc(PickerInvite.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def revoke(self, invite: PickerInvite) -> None:
        invite.revoked_at = utcnow()
        await self._session.flush()

    async def mark_used(self, invite: PickerInvite) -> None:
        if invite.used_at is None:
            invite.used_at = utcnow()
            await self._session.flush()
