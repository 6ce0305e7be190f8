"""
bizdir.db.repositories.conversations

Repository for AI agent conversations and their messages.

Responsibilities:
- Create/list/update/delete conversations owned by a user.
- Append messages and read them back in chronological pages.
- Provide the recent history window sent to the AI gateway.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.base import utcnow
from bizdir.db.models import (
    AgentConversation,
    AgentMessage,
    ConversationMode,
    ConversationScope,
    MessageRole,
)

LIST_LIMIT = 50


class ConversationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        scope: ConversationScope,
        mode: ConversationMode,
        business_id: uuid.UUID | None,
        title: str | None,
    ) -> AgentConversation:
        conv = AgentConversation(
            user_id=user_id, scope=scope, mode=mode, business_id=business_id, title=title
        )
        self._session.add(conv)
        await self._session.flush()
        return conv

    async def get(self, conversation_id: uuid.UUID) -> AgentConversation | None:
        return await self._session.get(AgentConversation, conversation_id)

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        *,
        scope: ConversationScope | None = None,
        business_id: uuid.UUID | None = None,
    ) -> list[tuple[AgentConversation, int]]:
        counts = (
            select(AgentMessage.conversation_id, func.count(AgentMessage.id).label("n"))
            .group_by(AgentMessage.conversation_id)
            .subquery()
        )
        stmt = (
            select(AgentConversation, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.conversation_id == AgentConversation.id)
            .where(AgentConversation.user_id == user_id)
            .order_by(desc(AgentConversation.updated_at))
            .limit(LIST_LIMIT)
        )
        if scope is not None:
            stmt = stmt.where(AgentConversation.scope == scope)
        if business_id is not None:
            stmt = stmt.where(AgentConversation.business_id == business_id)
        return [(conv, int(n)) for conv, n in (await self._session.execute(stmt)).all()]

    async def touch(self, conv: AgentConversation) -> None:
        conv.updated_at = utcnow()
        await self._session.flush()

    async def delete(self, conv: AgentConversation) -> None:
        await self._session.delete(conv)
        await self._session.flush()

    async def add_message(
        self,
        *,
        conversation_id: uuid.UUID,
        role: MessageRole,
        content: str,
        meta: dict[str, Any] | None = None,
    ) -> AgentMessage:
        msg = AgentMessage(conversation_id=conversation_id, role=role, content=content, meta=meta)
        self._session.add(msg)
        await self._session.flush()
        return msg

    async def count_messages(self, conversation_id: uuid.UUID) -> int:
        stmt = select(func.count(AgentMessage.id)).where(
            AgentMessage.conversation_id == conversation_id
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def page_messages(
        self, conversation_id: uuid.UUID, *, limit: int, offset: int = 0
    ) -> list[AgentMessage]:
        stmt = (
            select(AgentMessage)
            .where(AgentMessage.conversation_id == conversation_id)
            .order_by(AgentMessage.created_at, AgentMessage.id)
            .offset(offset)
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def recent_messages(self, conversation_id: uuid.UUID, *, limit: int) -> list[AgentMessage]:
        # Latest `limit` messages, returned oldest-first.
        stmt = (
            select(AgentMessage)
            .where(AgentMessage.conversation_id == conversation_id)
            .order_by(desc(AgentMessage.created_at))
            .limit(limit)
        )
        rows = list((await self._session.execute(stmt)).scalars().all())
        rows.reverse()
        return rows


# --- Module Notes -----------------------------------------------------------
# Message timestamps come from `utcnow()`; messages written in the same request keep
# insertion order because the user message is flushed before the assistant reply.
