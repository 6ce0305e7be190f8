"""
bizdir.api.routers.health

Liveness and readiness probes.

Responsibilities:
- `/healthz` answers as long as the process serves HTTP.
- `/readyz` checks the database and reports whether the AI gateway is configured.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.ai_gateway.client import AiGatewayClient
from bizdir.api.deps import ai_gateway_dep, db_session

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session: AsyncSession = Depends(db_session),
    gateway: AiGatewayClient = Depends(ai_gateway_dep),
) -> dict[str, Any]:
    await session.execute(text("SELECT 1"))
    # An unconfigured gateway degrades chat features but does not block readiness.
    return {
        "status": "ready",
        "database": session.bind.dialect.name,
        "ai_gateway": "configured" if gateway.configured else "missing",
    }
