"""
tests.test_auth

Account lifecycle: registration, login, refresh and one-step resident onboarding.
"""

from __future__ import annotations

import httpx
import pytest

from bizdir.auth.jwt import JwtConfig, decode_and_validate
from bizdir.settings import Settings


@pytest.mark.asyncio
async def test_register_login_and_me(client: httpx.AsyncClient, settings: Settings) -> None:
    r = await client.post(
        "/v1/auth/register", json={"email": "Owner@Example.com", "password": "secret1", "name": "Owner"}
    )
    assert r.status_code == 201, r.text
    assert r.json()["user"]["email"] == "owner@example.com"
    assert r.json()["user"]["role"] == "BUSINESS_OWNER"

    r = await client.post("/v1/auth/register", json={"email": "owner@example.com", "password": "other1"})
    assert r.status_code == 409
    assert r.json()["detail"] == "User already exists"

    r = await client.post("/v1/auth/login", json={"email": "owner@example.com", "password": "secret1"})
    assert r.status_code == 200
    token = r.json()["access_token"]
    payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=token)
    assert payload["roles"] == ["BUSINESS_OWNER"]
    assert payload["email"] == "owner@example.com"

    r = await client.get("/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["business_ids"] == []


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(client: httpx.AsyncClient) -> None:
    await client.post("/v1/auth/register", json={"email": "a@example.com", "password": "secret1"})

    r = await client.post("/v1/auth/login", json={"email": "a@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"

    r = await client.post("/v1/auth/login", json={"email": "nobody@example.com", "password": "secret1"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_protected_endpoint_requires_valid_token(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/auth/me")
    assert r.status_code == 401

    r = await client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"].startswith("Invalid token")


@pytest.mark.asyncio
async def test_resident_signup_creates_draft_business(client: httpx.AsyncClient, signup) -> None:
    resident = await signup(email="grocer@example.com", name="Green Grocer", city="Moscow")
    assert resident.slug == "green-grocer"

    r = await client.get("/v1/office/businesses", headers=resident.headers)
    assert r.status_code == 200
    [business] = r.json()
    assert business["lifecycle_status"] == "DRAFT"
    assert business["billing_status"] == "UNPAID"
    assert business["city"] == "Moscow"

    # Login picks up the first business into the token.
    r = await client.post("/v1/auth/login", json={"email": "grocer@example.com", "password": "secret1"})
    assert r.json()["business_id"] == resident.business_id

    r = await client.post("/v1/auth/refresh", headers=resident.headers)
    assert r.status_code == 200
    assert r.json()["business_id"] == resident.business_id


@pytest.mark.asyncio
async def test_resident_signup_slug_collision_gets_suffix(signup) -> None:
    first = await signup(email="one@example.com", name="Bakery")
    second = await signup(email="two@example.com", name="Bakery")
    assert first.slug == "bakery"
    assert second.slug == "bakery-1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "code"),
    [
        ({"email": "x@example.com", "password": "secret1"}, "EMAIL_PASSWORD_NAME_REQUIRED"),
        ({"email": "x@example.com", "password": "123", "name": "Shop"}, "PASSWORD_TOO_SHORT"),
        ({"email": "x@example.com", "password": "secret1", "name": "Лавка"}, "INVALID_NAME_LATIN_ONLY"),
    ],
)
async def test_resident_signup_validation(client: httpx.AsyncClient, body: dict, code: str) -> None:
    r = await client.post("/v1/resident/signup", json=body)
    assert r.status_code == 400
    assert r.json()["detail"] == code


@pytest.mark.asyncio
async def test_resident_signup_duplicate_email(client: httpx.AsyncClient, signup) -> None:
    await signup(email="dup@example.com", name="Shop")
    r = await client.post(
        "/v1/resident/signup", json={"email": "dup@example.com", "password": "secret1", "name": "Shop"}
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "USER_ALREADY_EXISTS"
