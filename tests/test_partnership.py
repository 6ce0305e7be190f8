"""
tests.test_partnership

Buyer-side partnership flow: pending links, accept/decline, comparison and summaries.
"""

from __future__ import annotations

import uuid

import httpx
import pytest


async def _offer(client: httpx.AsyncClient, supplier, buyer_number: str, rows: list[dict], **extra) -> str:
    r = await client.post(
        f"/v1/office/businesses/{supplier.business_id}/prices",
        json={"rows": rows, **extra},
        headers=supplier.headers,
    )
    assert r.status_code == 201, r.text
    pl_id = r.json()["id"]
    r = await client.post(
        f"/v1/office/businesses/{supplier.business_id}/prices/{pl_id}/assign",
        json={"resident_number": buyer_number},
        headers=supplier.headers,
    )
    assert r.status_code == 200, r.text
    return r.json()["assignments"][0]["id"]


@pytest.mark.asyncio
async def test_accept_and_decline_flow(client: httpx.AsyncClient, signup, resident_number) -> None:
    farm = await signup(email="farm@example.com", name="Farm")
    buyer = await signup(email="cafe@example.com", name="Cafe")
    outsider = await signup(email="other@example.com", name="Other")
    link_id = await _offer(client, farm, await resident_number(buyer), [{"name": "Apples", "price_with_vat": 50}])
    url = f"/v1/office/businesses/{buyer.business_id}/partnership"

    r = await client.get(url, headers=buyer.headers)
    data = r.json()
    assert data["active_counterparties"] == []
    [pending] = data["incoming_requests"]
    assert pending["link_id"] == link_id
    assert pending["supplier"]["business_id"] == farm.business_id

    r = await client.post(f"{url}/requests/{link_id}", json={"action": "maybe"}, headers=buyer.headers)
    assert r.status_code == 400
    r = await client.post(f"{url}/requests/{uuid.uuid4()}", json={"action": "accept"}, headers=buyer.headers)
    assert r.status_code == 404
    r = await client.post(
        f"/v1/office/businesses/{outsider.business_id}/partnership/requests/{link_id}",
        json={"action": "accept"},
        headers=outsider.headers,
    )
    assert r.status_code == 403

    r = await client.post(f"{url}/requests/{link_id}", json={"action": "accept"}, headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["status"] == "ACTIVE"
    assert r.json()["responded_at"] is not None

    r = await client.post(f"{url}/requests/{link_id}", json={"action": "decline"}, headers=buyer.headers)
    assert r.status_code == 409

    r = await client.get(url, headers=buyer.headers)
    [counterparty] = r.json()["active_counterparties"]
    assert counterparty["business_id"] == farm.business_id
    assert r.json()["incoming_requests"] == []

    # Ending the partnership declines every active link between the two.
    r = await client.delete(f"{url}/counterparties/{farm.business_id}", headers=buyer.headers)
    assert r.status_code == 200
    assert r.json()["declined"] == 1
    r = await client.get(url, headers=buyer.headers)
    assert r.json()["active_counterparties"] == []


@pytest.mark.asyncio
async def test_reassign_resets_to_pending(client: httpx.AsyncClient, signup, resident_number) -> None:
    farm = await signup(email="farm@example.com", name="Farm")
    buyer = await signup(email="cafe@example.com", name="Cafe")
    number = await resident_number(buyer)
    link_id = await _offer(client, farm, number, [{"name": "Apples", "price_with_vat": 50}])
    url = f"/v1/office/businesses/{buyer.business_id}/partnership"
    await client.post(f"{url}/requests/{link_id}", json={"action": "accept"}, headers=buyer.headers)

    r = await client.get(f"/v1/office/businesses/{farm.business_id}/prices", headers=farm.headers)
    pl_id = r.json()["price_lists"][0]["id"]
    r = await client.post(
        f"/v1/office/businesses/{farm.business_id}/prices/{pl_id}/assign",
        json={"resident_number": number},
        headers=farm.headers,
    )
    [link] = r.json()["assignments"]
    assert link["status"] == "PENDING"
    assert link["responded_at"] is None


@pytest.mark.asyncio
async def test_price_comparison_and_request_summary(client: httpx.AsyncClient, signup, resident_number) -> None:
    buyer = await signup(email="cafe@example.com", name="Cafe")
    number = await resident_number(buyer)
    farm = await signup(email="farm@example.com", name="Farm")
    garden = await signup(email="garden@example.com", name="Garden")
    dairy = await signup(email="dairy@example.com", name="Dairy")

    links = [
        await _offer(client, farm, number, [{"name": "Tomatoes", "unit": "kg", "price_with_vat": 120}]),
        await _offer(client, garden, number, [{"name": "tomatoes", "unit": "kg", "price_with_vat": 110}]),
        await _offer(client, dairy, number, [{"name": "Milk", "unit": "l", "price_with_vat": 90}], category="Dairy"),
    ]
    for link_id in links:
        r = await client.post(
            f"/v1/office/businesses/{buyer.business_id}/partnership/requests/{link_id}",
            json={"action": "accept"},
            headers=buyer.headers,
        )
        assert r.status_code == 200

    base = f"/v1/office/businesses/{buyer.business_id}"
    r = await client.get(f"{base}/price-comparison", headers=buyer.headers)
    assert r.status_code == 200
    table = r.json()
    assert table["category"] == "Fresh produce"
    assert [s["supplier_legal_name"] for s in table["suppliers"]] == ["Farm", "Garden"]
    [row] = table["rows"]
    assert row["norm_title"] == "tomatoes"
    assert row["offers"][farm.business_id]["price"] == 120.0
    assert row["offers"][garden.business_id]["price"] == 110.0

    r = await client.get(f"{base}/price-comparison", params={"category": "Dairy"}, headers=buyer.headers)
    assert [s["supplier_legal_name"] for s in r.json()["suppliers"]] == ["Dairy"]

    r = await client.post(f"{base}/request-summary", json={"items": [{"name": " "}]}, headers=buyer.headers)
    assert r.status_code == 400

    r = await client.post(
        f"{base}/request-summary",
        json={"items": [{"name": "Tomatoes", "quantity": 5, "unit": "kg"}, {"name": "Milk"}]},
        headers=buyer.headers,
    )
    assert r.status_code == 200
    summary = r.json()
    assert summary["items"][0]["quantity"] == "5"
    assert summary["items"][0]["offers"] == {farm.business_id: 120.0, garden.business_id: 110.0}
    assert summary["items"][1]["offers"] == {dairy.business_id: 90.0}
    assert [c["legal_name"] for c in summary["counterparties"]] == ["Dairy", "Farm", "Garden"]
