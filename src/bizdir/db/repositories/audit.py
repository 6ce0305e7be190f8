"""
bizdir.db.repositories.audit

Repository for `AuditLog` entries.

Responsibilities:
- Append audit entries (AI calls, admin actions).
- Query recent entries per action for diagnostics and tests.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import AuditLog


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self, *, user_id: uuid.UUID | None, action: str, details: dict[str, Any]
    ) -> AuditLog:
        # Audit entries are append-only in normal operation.
        entry = AuditLog(user_id=user_id, action=action, details=details)
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_by_action(self, action: str, *, limit: int = 200) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.action == action)
            .order_by(desc(AuditLog.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())
