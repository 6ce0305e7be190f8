"""
bizdir.services.pickers

Picker (order assembler) assignment workflow.

Responsibilities:
- Keep exactly one PICKER assignment per request, backed by a live invite link.
- Resolve the request to attach a picker to at business level (latest request, or a
  technical one created on the fly).
- Build public invite URLs from the configured app origin.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import Business, Request, RequestAssignment
from bizdir.db.repositories.pickers import PickerRepo
from bizdir.db.repositories.requests import RequestRepo
from bizdir.observability.logging import get_logger
from bizdir.settings import Settings

log = get_logger(__name__)

PICKER_LABEL = "Picker 1"
TECHNICAL_REQUEST_TITLE = "Request from the partnership page"
TECHNICAL_REQUEST_DESCRIPTION = "Created automatically to assign a picker."
TECHNICAL_REQUEST_SOURCE = "partnership_assign_picker"


class PickerService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._pickers = PickerRepo(session)

    def invite_url(self, token: str) -> str:
        return f"{self._settings.app_url.rstrip('/')}/pick/invite/{token}"

    async def ensure_for_request(
        self, request: Request, *, actor_id: uuid.UUID | None
    ) -> RequestAssignment:
        assignment = await self._pickers.get_assignment(request.id)
        if assignment is not None and assignment.invite is not None and assignment.invite.revoked_at is None:
            return assignment

        invite = await self._pickers.create_invite(
            request_id=request.id, label=PICKER_LABEL, created_by_user_id=actor_id
        )
        if assignment is None:
            assignment = await self._pickers.create_assignment(
                request_id=request.id, invite=invite, created_by_user_id=actor_id
            )
        else:
            # The unique (request, role) slot is reused; only the invite is replaced.
            assignment.invite_id = invite.id
            assignment.invite = invite
            await self._session.flush()

        log.info("picker_assigned", request_id=str(request.id), assignment_id=str(assignment.id))
        return assignment

    async def ensure_for_business(
        self, business: Business, *, actor_id: uuid.UUID | None
    ) -> RequestAssignment:
        requests = RequestRepo(self._session)
        request = await requests.latest_for_business(business.id)
        if request is None:
            request = await requests.create(
                business_id=business.id,
                title=TECHNICAL_REQUEST_TITLE,
                description=TECHNICAL_REQUEST_DESCRIPTION,
                source=TECHNICAL_REQUEST_SOURCE,
            )
        return await self.ensure_for_request(request, actor_id=actor_id)

    async def revoke_latest(self, business_id: uuid.UUID) -> bool:
        live = await self._pickers.live_for_business(business_id)
        if not live or live[0].invite is None:
            return False
        await self._pickers.revoke(live[0].invite)
        log.info("picker_revoked", business_id=str(business_id), invite_id=str(live[0].invite.id))
        return True

    async def live_pickers(self, business_id: uuid.UUID) -> list[dict[str, Any]]:
        return [self.describe(a) for a in await self._pickers.live_for_business(business_id)]

    def describe(self, assignment: RequestAssignment) -> dict[str, Any]:
        invite = assignment.invite
        if invite is None:
            raise ValueError("assignment has no invite")
        return {
            "assignment_id": str(assignment.id),
            "request_id": str(assignment.request_id),
            "role": assignment.role.value,
            "invite_id": str(invite.id),
            "label": invite.label,
            "created_at": invite.created_at.isoformat(),
            "used_at": invite.used_at.isoformat() if invite.used_at else None,
            "revoked_at": invite.revoked_at.isoformat() if invite.revoked_at else None,
            "url": self.invite_url(invite.token),
        }
