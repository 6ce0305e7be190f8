"""
bizdir.db.repositories.playbook

Repository for the agent playbook (`AgentPlaybookItem`).

Responsibilities:
- Record curated moves for the platform or a single business.
- Search items by scope, business, tag and free text, newest first.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.models import AgentPlaybookItem, PlaybookConfidence, PlaybookScope


class PlaybookRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        scope: PlaybookScope,
        title: str,
        move: str,
        confidence: PlaybookConfidence,
        business_id: uuid.UUID | None = None,
        context: str | None = None,
        outcome: str | None = None,
        tags: list[str] | None = None,
    ) -> AgentPlaybookItem:
        item = AgentPlaybookItem(
            scope=scope,
            business_id=business_id,
            title=title,
            move=move,
            context=context,
            outcome=outcome,
            confidence=confidence,
            tags=list(tags or []),
        )
        self._session.add(item)
        await self._session.flush()
        return item

    async def search(
        self,
        *,
        scope: PlaybookScope | None = None,
        business_id: uuid.UUID | None = None,
        tag: str | None = None,
        q: str | None = None,
    ) -> list[AgentPlaybookItem]:
        stmt = select(AgentPlaybookItem)
        if scope is not None:
            stmt = stmt.where(AgentPlaybookItem.scope == scope)
        if business_id is not None:
            stmt = stmt.where(AgentPlaybookItem.business_id == business_id)
        if q:
            pattern = f"%{q.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(AgentPlaybookItem.title).like(pattern),
                    func.lower(AgentPlaybookItem.move).like(pattern),
                    func.lower(AgentPlaybookItem.context).like(pattern),
                    func.lower(AgentPlaybookItem.outcome).like(pattern),
                )
            )
        stmt = stmt.order_by(desc(AgentPlaybookItem.created_at))
        items = list((await self._session.execute(stmt)).scalars().all())
        if tag:
            items = [i for i in items if tag in (i.tags or [])]
        return items


# --- Module Notes -----------------------------------------------------------
# Tags live in a JSON column, so tag membership is checked after the query; the
# other filters run in SQL.
