"""
bizdir.services.chat

Public AI chat widget helpers.

Responsibilities:
- Build the system prompt describing the business to the assistant.
- Extract the `[CREATE_REQUEST]` marker + JSON payload the assistant appends when a
  visitor is ready to leave a request, and strip it from the visible reply.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from bizdir.observability.logging import get_logger

log = get_logger(__name__)

CREATE_REQUEST_MARKER = "[CREATE_REQUEST]"

_MARKER_PAYLOAD = re.compile(r"\[CREATE_REQUEST\]\s*(\{.*\})", re.S)
_MARKER_TAIL = re.compile(r"\[CREATE_REQUEST\].*$", re.S)


def widget_system_prompt(*, business_name: str, business_description: str | None) -> str:
    lines = [f'You are the AI assistant of the business "{business_name or "this business"}".']
    if business_description:
        lines.append(f"Business description: {business_description}")
    lines += [
        "",
        "Your tasks:",
        "1. Answer visitor questions in a friendly and professional way.",
        "2. Collect what the visitor needs.",
        "3. When the visitor wants the service, offer to create a request.",
        "",
        f"If the visitor is ready to leave a request, end the reply with the marker {CREATE_REQUEST_MARKER}",
        "followed by a JSON object:",
        '{"title": "Short request title", "description": "Details", '
        '"client_name": "Name if given", "client_email": "Email if given", '
        '"client_phone": "Phone if given"}',
    ]
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class ParsedReply:
    response: str
    should_create_request: bool
    request_data: dict[str, Any] | None


def parse_reply(reply: str) -> ParsedReply:
    should_create = CREATE_REQUEST_MARKER in reply
    request_data: dict[str, Any] | None = None
    if should_create:
        match = _MARKER_PAYLOAD.search(reply)
        if match:
            try:
                decoded = json.loads(match.group(1))
            except ValueError as e:
                log.warning("create_request_payload_invalid", error=str(e))
                decoded = None
            if isinstance(decoded, dict):
                request_data = decoded
    return ParsedReply(
        response=_MARKER_TAIL.sub("", reply).strip(),
        should_create_request=should_create,
        request_data=request_data,
    )
