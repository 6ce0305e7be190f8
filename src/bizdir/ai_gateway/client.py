"""
bizdir.ai_gateway.client

HTTP client boundary used by chat features to reach the AI gateway.

Responsibilities:
- Attach the shared gateway secret header.
- Send chat transcripts to `/v1/chat` and return the assistant reply.
- Normalize every failure mode into `AiGatewayError`.
- Probe gateway health for admin diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import httpx

from bizdir.observability.logging import get_logger
from bizdir.settings import Settings

log = get_logger(__name__)

SECRET_HEADER = "X-Gateway-Secret"

ChatRole = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: ChatRole
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class AiGatewayError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AiGatewayClient:
    """
    Thin async client; the httpx.AsyncClient is owned by the app lifespan.
    """

    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    @property
    def configured(self) -> bool:
        return bool(self._settings.ai_gateway_url and self._settings.ai_gateway_secret)

    @property
    def model(self) -> str:
        return self._settings.ai_model

    def _url(self, path: str) -> str:
        base = (self._settings.ai_gateway_url or "").rstrip("/")
        return f"{base}{path}"

    def _headers(self) -> dict[str, str]:
        return {SECRET_HEADER: self._settings.ai_gateway_secret or ""}

    async def chat(self, messages: list[ChatMessage]) -> str:
        if not self.configured:
            raise AiGatewayError("AI gateway configuration is missing")

        try:
            r = await self._http.post(
                self._url("/v1/chat"),
                json={"model": self.model, "messages": [m.as_dict() for m in messages]},
                headers=self._headers(),
                timeout=self._settings.ai_gateway_timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.warning("ai_gateway_transport_error", error=str(e))
            raise AiGatewayError(f"AI gateway unreachable: {e}") from e

        if r.is_error:
            log.warning("ai_gateway_error", status_code=r.status_code, body=r.text[:300])
            raise AiGatewayError("AI gateway error", status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise AiGatewayError("AI gateway returned invalid JSON") from e
        if not isinstance(data, dict):
            log.warning("ai_gateway_unexpected_payload", payload_type=type(data).__name__)
            raise AiGatewayError("AI gateway returned an unexpected payload")

        reply = str(data.get("reply") or "").strip()
        if not reply:
            raise AiGatewayError("Empty AI reply")
        return reply

    async def health(self) -> dict[str, Any]:
        diagnostics: dict[str, Any] = {
            "gateway_url": self._settings.ai_gateway_url or "",
            "has_gateway_secret": bool(self._settings.ai_gateway_secret),
        }
        if not self._settings.ai_gateway_url:
            diagnostics["ok"] = False
            diagnostics["error"] = "AI gateway url is missing"
            return diagnostics

        try:
            r = await self._http.get(
                self._url("/health"), timeout=self._settings.ai_gateway_timeout_seconds
            )
            diagnostics["health_status_code"] = r.status_code
            diagnostics["health_body"] = r.text[:300]
            diagnostics["ok"] = r.is_success
        except httpx.HTTPError as e:
            diagnostics["ok"] = False
            diagnostics["health_error"] = str(e)
        return diagnostics


# --- Module Notes -----------------------------------------------------------
# Tests swap the transport for `httpx.MockTransport` through `create_app(ai_transport=...)`.
