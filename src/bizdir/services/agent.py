"""
bizdir.services.agent

AI agent conversation turns.

Responsibilities:
- Build the system prompt for a conversation from its mode and business context.
- Answer platform business-count questions locally for admins in CREATOR mode.
- Send the recent history to the AI gateway and persist the assistant reply.
- Record every AI call in the audit log.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.ai_gateway.client import AiGatewayClient, AiGatewayError, ChatMessage, ChatRole
from bizdir.auth.models import Principal
from bizdir.db.models import (
    AgentConversation,
    AgentMessage,
    ConversationMode,
    ConversationScope,
    MessageRole,
)
from bizdir.db.repositories.audit import AuditRepo
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.conversations import ConversationRepo
from bizdir.observability.logging import get_logger
from bizdir.settings import Settings

log = get_logger(__name__)

AUDIT_ACTION = "AI_AGENT_CALL"
BUSINESS_COUNT_TOOL = "get_platform_business_count"

NOT_CONFIGURED_REPLY = (
    "AI is not configured. Set BIZDIR_AI_GATEWAY_URL and BIZDIR_AI_GATEWAY_SECRET."
)
FAILURE_REPLY = "Sorry, the AI could not answer right now. Please try again later."

MODE_PROMPTS: dict[ConversationMode, str] = {
    ConversationMode.creator: (
        "You are the AI agent of the platform creator. You help with development, DevOps, "
        "architecture and product. Answer professionally and to the point."
    ),
    ConversationMode.resident: (
        "You are the AI agent of a business owner on the platform. You help with marketing, "
        "content, business settings and the public showcase."
    ),
    ConversationMode.client: (
        "You are the AI agent of a client. You help pick a business, answer questions and "
        "file a request."
    ),
}

_BUSINESS_COUNT_QUESTION = re.compile(
    r"how\s+many\s+business(es)?|number\s+of\s+business(es)?|business(es)?\s+count"
    r"|сколько\s+бизнесов|количеств[оа]\s+бизнесов|числ[оа]\s+бизнесов",
    re.I,
)

_ROLE_MAP: dict[MessageRole, ChatRole] = {
    MessageRole.user: "user",
    MessageRole.assistant: "assistant",
    MessageRole.system: "system",
}


def is_business_count_question(text: str) -> bool:
    return bool(_BUSINESS_COUNT_QUESTION.search(text))


@dataclass(frozen=True, slots=True)
class AgentTurn:
    user_message: AgentMessage
    assistant_message: AgentMessage


class AgentService:
    def __init__(
        self, *, session: AsyncSession, settings: Settings, gateway: AiGatewayClient
    ) -> None:
        self._session = session
        self._settings = settings
        self._gateway = gateway
        self._conversations = ConversationRepo(session)

    async def system_prompt(self, conv: AgentConversation) -> str:
        prompt = MODE_PROMPTS[conv.mode]
        if conv.scope == ConversationScope.business and conv.business_id is not None:
            business = await BusinessRepo(self._session).get(conv.business_id)
            if business is not None:
                prompt += f"\n\nBusiness context: {business.name}"
                if business.description:
                    prompt += f"\nDescription: {business.description}"
        return prompt

    async def _answer_locally(self) -> tuple[str, dict[str, Any]]:
        count = await BusinessRepo(self._session).count()
        return (
            f"There are currently {count} businesses on the platform.",
            {"tool": BUSINESS_COUNT_TOOL, "business_count": count},
        )

    async def _answer_with_gateway(self, conv: AgentConversation) -> tuple[str, dict[str, Any] | None, str | None]:
        history = await self._conversations.recent_messages(
            conv.id, limit=self._settings.agent_history_limit
        )
        messages = [ChatMessage(role="system", content=await self.system_prompt(conv))]
        messages += [ChatMessage(role=_ROLE_MAP[m.role], content=m.content) for m in history]

        if not self._gateway.configured:
            log.warning("ai_gateway_not_configured", conversation_id=str(conv.id))
            return NOT_CONFIGURED_REPLY, None, "not_configured"
        try:
            reply = await self._gateway.chat(messages)
        except AiGatewayError as e:
            log.warning("agent_reply_failed", conversation_id=str(conv.id), error=str(e))
            return FAILURE_REPLY, None, str(e)
        return reply, {"model": self._gateway.model, "gateway": True}, None

    async def send(self, conv: AgentConversation, *, principal: Principal, content: str) -> AgentTurn:
        user_message = await self._conversations.add_message(
            conversation_id=conv.id, role=MessageRole.user, content=content
        )

        error: str | None = None
        if (
            conv.mode == ConversationMode.creator
            and principal.is_admin
            and is_business_count_question(content)
        ):
            reply, meta = await self._answer_locally()
            source = BUSINESS_COUNT_TOOL
        else:
            reply, meta, error = await self._answer_with_gateway(conv)
            source = "gateway"

        assistant_message = await self._conversations.add_message(
            conversation_id=conv.id, role=MessageRole.assistant, content=reply, meta=meta
        )
        await self._conversations.touch(conv)
        await AuditRepo(self._session).add(
            user_id=principal.user_id,
            action=AUDIT_ACTION,
            details={
                "conversation_id": str(conv.id),
                "mode": conv.mode.value,
                "scope": conv.scope.value,
                "source": source,
                "ok": error is None,
                "error": error,
            },
        )
        return AgentTurn(user_message=user_message, assistant_message=assistant_message)


# --- Module Notes -----------------------------------------------------------
# Gateway failures never fail the request: the user always gets an assistant message back.
