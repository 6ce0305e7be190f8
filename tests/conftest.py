"""
tests.conftest

Shared fixtures: an app bound to a throwaway SQLite database, an in-process AI gateway,
and helpers that onboard residents and the platform admin through the public API.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from bizdir.api.app import create_app
from bizdir.auth.passwords import hash_password
from bizdir.db.models import UserRole
from bizdir.db.repositories.users import UserRepo
from bizdir.db.session import session_scope
from bizdir.settings import Settings

GATEWAY_URL = "http://gateway.test"
GATEWAY_SECRET = "gateway-secret"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass"


@dataclass
class FakeGateway:
    """
    Stand-in for the AI gateway: records chat payloads and answers with `reply`.
    """

    reply: str = "Hello from the gateway"
    status_code: int = 200
    calls: list[dict[str, Any]] = field(default_factory=list)
    headers: list[str | None] = field(default_factory=list)
    # Overrides the `{"reply": ...}` body when set.
    payload: Any = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health":
            return httpx.Response(200, text="ok")
        self.calls.append(json.loads(request.content))
        self.headers.append(request.headers.get("X-Gateway-Secret"))
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": "boom"})
        if self.payload is not None:
            return httpx.Response(200, json=self.payload)
        return httpx.Response(200, json={"reply": self.reply})


@dataclass(frozen=True)
class Resident:
    user_id: str
    business_id: str
    slug: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'bizdir-test.db'}",
        jwt_secret="test-jwt-secret",
        app_url="http://app.test",
        ai_gateway_url=GATEWAY_URL,
        ai_gateway_secret=GATEWAY_SECRET,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def app(settings: Settings, gateway: FakeGateway) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, ai_transport=httpx.MockTransport(gateway.handle))
    # httpx ASGITransport does not run the lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def signup(client: httpx.AsyncClient) -> Callable[..., Awaitable[Resident]]:
    async def _signup(
        email: str = "owner@example.com", name: str = "Green Grocer", password: str = "secret1", **extra: Any
    ) -> Resident:
        r = await client.post(
            "/v1/resident/signup", json={"email": email, "password": password, "name": name, **extra}
        )
        assert r.status_code == 201, r.text
        data = r.json()
        return Resident(
            user_id=data["user"]["id"],
            business_id=data["business"]["id"],
            slug=data["business"]["slug"],
            token=data["access_token"],
        )

    return _signup


@pytest.fixture
async def admin_headers(app: FastAPI, client: httpx.AsyncClient) -> dict[str, str]:
    async with session_scope(app.state.sessionmaker) as session:
        await UserRepo(session).create(
            email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD), role=UserRole.admin
        )
    r = await client.post("/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def activate(
    client: httpx.AsyncClient, admin_headers: dict[str, str]
) -> Callable[[str], Awaitable[None]]:
    async def _activate(business_id: str) -> None:
        r = await client.post(f"/v1/admin/businesses/{business_id}/activate", headers=admin_headers)
        assert r.status_code == 200, r.text

    return _activate


@pytest.fixture
def resident_number(client: httpx.AsyncClient) -> Callable[[Resident], Awaitable[str]]:
    async def _resident_number(resident: Resident) -> str:
        r = await client.get(f"/v1/office/businesses/{resident.business_id}/profile", headers=resident.headers)
        assert r.status_code == 200, r.text
        return r.json()["resident_number"]

    return _resident_number
