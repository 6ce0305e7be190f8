"""
bizdir.api.routers.agent

AI agent conversations for signed-in users.

Responsibilities:
- CRUD for conversations scoped to the platform, a business, or public help.
- Post a message and receive the agent reply in one call.
- Page through the message history.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
)

from bizdir.ai_gateway.client import AiGatewayClient
from bizdir.api.deps import ai_gateway_dep, db_session, settings_dep
from bizdir.api.tenancy import ensure_can_manage
from bizdir.auth.deps import get_principal
from bizdir.auth.models import Principal
from bizdir.db.models import (
    AgentConversation,
    ConversationMode,
    ConversationScope,
    MessageRole,
)
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.conversations import ConversationRepo
from bizdir.observability.logging import get_logger
from bizdir.services.agent import AgentService
from bizdir.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/v1/agent/conversations", tags=["agent"])

RECENT_MESSAGES = 10
MAX_PAGE = 100


class ConversationCreate(BaseModel):
    scope: ConversationScope
    mode: ConversationMode
    business_id: uuid.UUID | None = None
    title: str | None = Field(default=None, max_length=256)


class ConversationPatch(BaseModel):
    title: str | None = Field(default=None, max_length=256)


class MessageCreate(BaseModel):
    content: str | None = None


class MessageOut(BaseModel):
    id: uuid.UUID
    role: MessageRole
    content: str
    meta: dict[str, Any] | None = None
    created_at: datetime


class ConversationOut(BaseModel):
    id: uuid.UUID
    scope: ConversationScope
    mode: ConversationMode
    business_id: uuid.UUID | None
    title: str | None
    created_at: datetime
    updated_at: datetime
    message_count: int | None = None


def _conversation_out(conv: AgentConversation, *, message_count: int | None = None) -> ConversationOut:
    return ConversationOut(
        id=conv.id,
        scope=conv.scope,
        mode=conv.mode,
        business_id=conv.business_id,
        title=conv.title,
        created_at=conv.created_at,
        updated_at=conv.updated_at,
        message_count=message_count,
    )


def _message_out(msg: Any) -> MessageOut:
    return MessageOut(
        id=msg.id, role=msg.role, content=msg.content, meta=msg.meta, created_at=msg.created_at
    )


async def _accessible(
    conversation_id: uuid.UUID, principal: Principal, session: AsyncSession
) -> AgentConversation:
    conv = await ConversationRepo(session).get(conversation_id)
    if conv is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Conversation not found")
    if conv.user_id != principal.user_id and not principal.is_admin:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Forbidden")
    return conv


@router.post("", response_model=ConversationOut, status_code=HTTP_201_CREATED)
async def create_conversation(
    body: ConversationCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ConversationOut:
    if body.scope == ConversationScope.platform and not principal.is_admin:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Platform scope is admin-only")

    business_id: uuid.UUID | None = None
    if body.scope == ConversationScope.business:
        if body.business_id is None:
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="business_id is required for BUSINESS scope"
            )
        business = ensure_can_manage(await BusinessRepo(session).get(body.business_id), principal)
        business_id = business.id

    conv = await ConversationRepo(session).create(
        user_id=principal.user_id,
        scope=body.scope,
        mode=body.mode,
        business_id=business_id,
        title=body.title,
    )
    await session.commit()
    log.info("conversation_created", conversation_id=str(conv.id), scope=conv.scope.value)
    return _conversation_out(conv, message_count=0)


@router.get("")
async def list_conversations(
    scope: ConversationScope | None = None,
    business_id: uuid.UUID | None = None,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    if scope == ConversationScope.platform and not principal.is_admin:
        return {"conversations": []}
    rows = await ConversationRepo(session).list_for_user(
        principal.user_id, scope=scope, business_id=business_id
    )
    return {
        "conversations": [
            _conversation_out(conv, message_count=n).model_dump(mode="json") for conv, n in rows
        ]
    }


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    conv = await _accessible(conversation_id, principal, session)
    repo = ConversationRepo(session)
    messages = await repo.recent_messages(conv.id, limit=RECENT_MESSAGES)
    out = _conversation_out(conv, message_count=await repo.count_messages(conv.id))
    return {
        "conversation": out.model_dump(mode="json"),
        "messages": [_message_out(m).model_dump(mode="json") for m in messages],
    }


@router.patch("/{conversation_id}", response_model=ConversationOut)
async def rename_conversation(
    conversation_id: uuid.UUID,
    body: ConversationPatch,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> ConversationOut:
    conv = await _accessible(conversation_id, principal, session)
    conv.title = (body.title or "").strip() or None
    await ConversationRepo(session).touch(conv)
    await session.commit()
    return _conversation_out(conv)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, bool]:
    conv = await _accessible(conversation_id, principal, session)
    await ConversationRepo(session).delete(conv)
    await session.commit()
    log.info("conversation_deleted", conversation_id=str(conversation_id))
    return {"ok": True}


@router.post("/{conversation_id}/messages")
async def post_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    gateway: AiGatewayClient = Depends(ai_gateway_dep),
) -> dict[str, Any]:
    conv = await _accessible(conversation_id, principal, session)
    content = (body.content or "").strip()
    if not content:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Content is required")

    turn = await AgentService(session=session, settings=settings, gateway=gateway).send(
        conv, principal=principal, content=content
    )
    await session.commit()
    return {
        "user_message": _message_out(turn.user_message).model_dump(mode="json"),
        "assistant_message": _message_out(turn.assistant_message).model_dump(mode="json"),
    }


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: uuid.UUID,
    limit: int = Query(default=50, ge=1),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    conv = await _accessible(conversation_id, principal, session)
    repo = ConversationRepo(session)
    limit = min(limit, MAX_PAGE)
    messages = await repo.page_messages(conv.id, limit=limit, offset=offset)
    total = await repo.count_messages(conv.id)
    return {
        "messages": [_message_out(m).model_dump(mode="json") for m in messages],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(messages) < total,
        },
    }
