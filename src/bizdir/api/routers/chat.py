"""
bizdir.api.routers.chat

Public AI chat widget shown on business showcases.

Responsibilities:
- Ground the assistant in the business it talks for.
- Relay the transcript to the AI gateway and surface the request-creation hint.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_404_NOT_FOUND, HTTP_502_BAD_GATEWAY

from bizdir.ai_gateway.client import AiGatewayClient, AiGatewayError, ChatMessage
from bizdir.api.deps import ai_gateway_dep, db_session
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.observability.logging import get_logger
from bizdir.services.chat import parse_reply, widget_system_prompt

log = get_logger(__name__)

router = APIRouter(prefix="/v1/chat", tags=["chat"])


class WidgetMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class WidgetChatRequest(BaseModel):
    business_id: uuid.UUID
    messages: list[WidgetMessage] = Field(min_length=1)


class WidgetChatResponse(BaseModel):
    response: str
    should_create_request: bool
    request_data: dict[str, Any] | None = None


@router.post("", response_model=WidgetChatResponse)
async def widget_chat(
    body: WidgetChatRequest,
    session: AsyncSession = Depends(db_session),
    gateway: AiGatewayClient = Depends(ai_gateway_dep),
) -> WidgetChatResponse:
    business = await BusinessRepo(session).get(body.business_id)
    if business is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")

    messages = [
        ChatMessage(
            role="system",
            content=widget_system_prompt(
                business_name=business.name, business_description=business.description
            ),
        )
    ]
    messages += [ChatMessage(role=m.role, content=m.content) for m in body.messages]

    try:
        reply = await gateway.chat(messages)
    except AiGatewayError as e:
        log.warning("widget_chat_failed", business_id=str(business.id), error=str(e))
        raise HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail="AI gateway error") from e

    parsed = parse_reply(reply)
    return WidgetChatResponse(
        response=parsed.response,
        should_create_request=parsed.should_create_request,
        request_data=parsed.request_data,
    )
