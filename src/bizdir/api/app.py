"""
bizdir.api.app

FastAPI app factory for the business directory service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory, AI gateway HTTP client).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from bizdir.ai_gateway.client import AiGatewayClient
from bizdir.api.errors import register_exception_handlers
from bizdir.api.routers import admin, agent, auth, chat, directory, health
from bizdir.api.routers.office.router import router as office_router
from bizdir.db.init_db import init_db
from bizdir.db.session import create_engine, create_sessionmaker
from bizdir.observability.logging import configure_logging, get_logger
from bizdir.observability.middleware import RequestContextMiddleware
from bizdir.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, ai_transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json_logs=settings.env != "dev"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables and seed categories. Prod uses Alembic.
            await init_db(engine)

        http = httpx.AsyncClient(transport=ai_transport)
        app.state.ai_gateway = AiGatewayClient(settings=settings, http=http)
        try:
            yield
        finally:
            await http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Business Directory",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router)
    app.include_router(auth.resident_router)
    app.include_router(directory.router)
    app.include_router(chat.router)
    app.include_router(agent.router)
    app.include_router(office_router)
    app.include_router(admin.router)

    return app


# --- Module Notes -----------------------------------------------------------
# `ai_transport` lets tests swap the gateway for an in-process httpx transport.
