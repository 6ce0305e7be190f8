"""
bizdir.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions and the AI gateway client.
- Encapsulate app.state access patterns (engine/sessionmaker/clients).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizdir.ai_gateway.client import AiGatewayClient
from bizdir.settings import Settings, get_settings


def settings_dep(request: Request) -> Settings:
    # The app factory pins its Settings on app.state; fall back to env settings.
    return getattr(request.app.state, "settings", None) or get_settings()


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on startup in `bizdir.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commits are explicit in routers/services.
    async with session_factory() as session:
        yield session


def ai_gateway_dep(request: Request) -> AiGatewayClient:
    return request.app.state.ai_gateway  # type: ignore[attr-defined]


# --- Module Notes -----------------------------------------------------------
# Tenant ownership dependencies live in `api.tenancy` because they also need auth.
