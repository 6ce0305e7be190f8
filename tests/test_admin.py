"""
tests.test_admin

Admin endpoints and the `bizdir-admin` operations CLI.
"""

from __future__ import annotations

import uuid
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from typer.testing import CliRunner

from bizdir.db.repositories.audit import AuditRepo
from bizdir.tools.cli import app as cli_app
from tests.conftest import GATEWAY_URL


@pytest.mark.asyncio
async def test_admin_requires_admin_role(client: httpx.AsyncClient, signup) -> None:
    owner = await signup()
    assert (await client.get("/v1/admin/metrics")).status_code == 401
    r = await client.get("/v1/admin/metrics", headers=owner.headers)
    assert r.status_code == 403
    r = await client.post(f"/v1/admin/businesses/{owner.business_id}/activate", headers=owner.headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_activate_and_metrics(client: httpx.AsyncClient, signup, admin_headers) -> None:
    first = await signup(email="first@example.com", name="First Shop")
    await signup(email="second@example.com", name="Second Shop")

    r = await client.get("/v1/admin/businesses", headers=admin_headers)
    assert r.status_code == 200
    listed = r.json()
    assert [b["name"] for b in listed] == ["Second Shop", "First Shop"]
    assert {b["lifecycle_status"] for b in listed} == {"DRAFT"}

    r = await client.post(f"/v1/admin/businesses/{first.business_id}/activate", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["lifecycle_status"] == "ACTIVE"

    r = await client.post(f"/v1/admin/businesses/{uuid.uuid4()}/activate", headers=admin_headers)
    assert r.status_code == 404

    r = await client.get("/v1/admin/metrics", headers=admin_headers)
    metrics = r.json()
    assert metrics["businesses"] == {"total": 2, "active": 1, "inactive": 1}
    assert metrics["users"] == {"total": 3}

    r = await client.get("/v1/businesses")
    assert [b["name"] for b in r.json()] == ["First Shop"]


@pytest.mark.asyncio
async def test_categories(client: httpx.AsyncClient, admin_headers) -> None:
    r = await client.post(
        "/v1/admin/categories", json={"type": "PRICE", "name": " Wine ", "sort_order": 0}, headers=admin_headers
    )
    assert r.status_code == 201
    created = r.json()
    assert created["name"] == "Wine"
    r = await client.post("/v1/admin/categories", json={"type": "BUSINESS", "name": "Retail"}, headers=admin_headers)
    assert r.status_code == 201

    r = await client.get("/v1/categories", params={"type": "price"})
    price = r.json()
    assert created["id"] in {c["id"] for c in price}
    assert "Retail" not in {c["name"] for c in price}
    assert [(c["sort_order"], c["name"]) for c in price] == sorted((c["sort_order"], c["name"]) for c in price)
    # Seeded "Fresh produce" also has sort_order 0 and sorts before "Wine" by name.
    assert [c["name"] for c in price[:2]] == ["Fresh produce", "Wine"]

    r = await client.get("/v1/categories", params={"type": "BUSINESS"})
    assert "Retail" in {c["name"] for c in r.json()}
    assert (await client.get("/v1/categories", params={"type": "OTHER"})).status_code == 400

    r = await client.post("/v1/admin/categories", json={"type": "PRICE", "name": ""}, headers=admin_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_ai_health(client: httpx.AsyncClient, admin_headers) -> None:
    r = await client.get("/v1/admin/ai/health", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["gateway_url"] == GATEWAY_URL
    assert body["has_gateway_secret"] is True
    assert body["health_status_code"] == 200


@pytest.mark.asyncio
async def test_agent_playbook(app: FastAPI, client: httpx.AsyncClient, signup, admin_headers) -> None:
    shop = await signup(email="shop@example.com", name="Shop")
    url = "/v1/admin/agent-playbook"

    assert (await client.get(url, headers=shop.headers)).status_code == 403
    r = await client.post(
        url,
        json={"scope": "PLATFORM", "title": "t", "move": "m", "confidence": "LOW"},
        headers=shop.headers,
    )
    assert r.status_code == 403

    r = await client.post(
        url,
        json={
            "scope": "PLATFORM",
            "title": " Welcome discount ",
            "move": "Offer 10% on the first order",
            "outcome": "More repeat customers",
            "confidence": "HIGH",
            "tags": ["pricing", " "],
        },
        headers=admin_headers,
    )
    assert r.status_code == 201
    platform_item = r.json()
    assert platform_item["title"] == "Welcome discount"
    assert platform_item["business_id"] is None
    assert platform_item["context"] is None
    assert platform_item["tags"] == ["pricing"]

    r = await client.post(
        url,
        json={
            "scope": "BUSINESS",
            "business_id": shop.business_id,
            "title": "Showcase photos",
            "move": "Post fresh photos weekly",
            "context": "Bakery with seasonal cakes",
            "confidence": "MEDIUM",
            "tags": ["marketing"],
        },
        headers=admin_headers,
    )
    assert r.status_code == 201
    business_item = r.json()

    bad_bodies = [
        {"scope": "BUSINESS", "title": "t", "move": "m", "confidence": "LOW"},
        {"scope": "PLATFORM", "business_id": shop.business_id, "title": "t", "move": "m", "confidence": "LOW"},
        {"scope": "PLATFORM", "title": "  ", "move": "m", "confidence": "LOW"},
        {"scope": "PLATFORM", "title": "t", "move": "m", "confidence": "SURE"},
        {"scope": "PUBLIC", "title": "t", "move": "m", "confidence": "LOW"},
    ]
    for body in bad_bodies:
        assert (await client.post(url, json=body, headers=admin_headers)).status_code == 400
    r = await client.post(
        url,
        json={"scope": "BUSINESS", "business_id": str(uuid.uuid4()), "title": "t", "move": "m", "confidence": "LOW"},
        headers=admin_headers,
    )
    assert r.status_code == 404

    async def ids(**params: str) -> list[str]:
        r = await client.get(url, params=params, headers=admin_headers)
        assert r.status_code == 200
        return [i["id"] for i in r.json()]

    assert await ids() == [business_item["id"], platform_item["id"]]
    assert await ids(scope="PLATFORM") == [platform_item["id"]]
    assert await ids(business_id=shop.business_id) == [business_item["id"]]
    assert await ids(tag="pricing") == [platform_item["id"]]
    assert await ids(q="SEASONAL") == [business_item["id"]]
    assert await ids(q="repeat") == [platform_item["id"]]
    assert await ids(q="nothing like this") == []
    assert (await client.get(url, params={"scope": "PUBLIC"}, headers=admin_headers)).status_code == 400

    async with app.state.sessionmaker() as session:
        entries = await AuditRepo(session).list_by_action("AGENT_PLAYBOOK_ITEM_CREATED")
    assert len(entries) == 2


# --- CLI ----------------------------------------------------------------------

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BIZDIR_ENV", "test")
    monkeypatch.setenv("BIZDIR_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")


def test_cli_seed_admin_and_reset_password(cli_env) -> None:
    args = ["seed-admin", "--email", "Root@Example.com", "--password", "secret1", "--name", "Root"]
    result = runner.invoke(cli_app, args)
    assert result.exit_code == 0, result.output
    assert "root@example.com created" in result.output

    result = runner.invoke(cli_app, args)
    assert result.exit_code == 0
    assert "already exists" in result.output

    result = runner.invoke(cli_app, ["reset-password", "--email", "root@example.com", "--password", "another1"])
    assert result.exit_code == 0, result.output
    assert "Password updated" in result.output


def test_cli_rejects_bad_input(cli_env) -> None:
    result = runner.invoke(cli_app, ["seed-admin", "--email", "root@example.com", "--password", "123"])
    assert result.exit_code == 1
    assert "at least 6 characters" in result.output

    runner.invoke(cli_app, ["seed-admin", "--email", "root@example.com", "--password", "secret1"])
    result = runner.invoke(cli_app, ["reset-password", "--email", "ghost@example.com", "--password", "secret1"])
    assert result.exit_code == 1
    assert "not found" in result.output
