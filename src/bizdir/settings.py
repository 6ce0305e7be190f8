"""
bizdir.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, AI gateway secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BIZDIR_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "bizdir"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Public origin used to build links handed to external people (picker invites).
    app_url: str = "http://localhost:3000"

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "bizdir"
    jwt_audience: str = "bizdir-api"
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, repr=False)
    jwt_ttl_days: int = 7

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./bizdir.db"

    # AI gateway (chat completions proxy)
    ai_gateway_url: str | None = None
    ai_gateway_secret: str | None = Field(default=None, repr=False)
    ai_gateway_timeout_seconds: float = 30.0
    ai_model: str = "gpt-4o-mini"
    agent_history_limit: int = 20

    # Showcase limits
    max_business_photos: int = 12
    max_portfolio_photos: int = 12
    max_featured_services: int = 4


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer reads configuration through `get_settings()`; tests construct
# `Settings(...)` directly and hand it to `create_app`.
