"""
tests.test_requests_pickers_invoices

Inbound work: partner purchase requests, status changes, picker invites and invoices.
"""

from __future__ import annotations

import re
import uuid

import httpx
import pytest


async def _customer_request(client: httpx.AsyncClient, business_id: str, title: str = "Need a cake") -> str:
    r = await client.post(
        "/v1/requests", json={"business_id": business_id, "title": title, "description": "Chocolate"}
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


@pytest.mark.asyncio
async def test_send_and_list_incoming(client: httpx.AsyncClient, signup) -> None:
    buyer = await signup(email="cafe@example.com", name="Cafe")
    farm = await signup(email="farm@example.com", name="Farm")
    send = f"/v1/office/businesses/{buyer.business_id}/requests/send"

    r = await client.post(send, json={"items": []}, headers=buyer.headers)
    assert r.status_code == 400
    r = await client.post(send, json={"recipient_business_id": str(uuid.uuid4())}, headers=buyer.headers)
    assert r.status_code == 404

    customer_id = await _customer_request(client, farm.business_id)
    r = await client.post(
        send,
        json={
            "recipient_business_id": farm.business_id,
            "category": "Fresh produce",
            "total": "1 250,00",
            "items": [
                {"name": "Tomatoes", "quantity": 10, "unit": "kg", "price": 120, "sum": 1200},
                {"name": " "},
                {"name": "Dill", "quantity": "1", "unit": "bunch", "price": "50", "sum": "50"},
            ],
        },
        headers=buyer.headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["items_count"] == 2
    incoming_id = r.json()["id"]

    r = await client.get(f"/v1/office/businesses/{farm.business_id}/requests/incoming", headers=farm.headers)
    assert r.status_code == 200
    entries = r.json()["requests"]
    assert [e["type"] for e in entries] == ["incoming", "request"]

    partner = entries[0]
    assert partner["id"] == incoming_id
    assert partner["sender_legal_name"] == "Cafe"
    assert partner["total"] == 1250.0
    assert [i["name"] for i in partner["items"]] == ["Tomatoes", "Dill"]
    assert partner["items"][0]["quantity"] == "10"

    customer = entries[1]
    assert customer["request_id"] == customer_id
    assert customer["items"][0]["name"] == "Chocolate"


@pytest.mark.asyncio
async def test_update_request_status(client: httpx.AsyncClient, signup) -> None:
    buyer = await signup(email="cafe@example.com", name="Cafe")
    farm = await signup(email="farm@example.com", name="Farm")
    r = await client.post(
        f"/v1/office/businesses/{buyer.business_id}/requests/send",
        json={"recipient_business_id": farm.business_id, "items": [{"name": "Apples"}]},
        headers=buyer.headers,
    )
    incoming_id = r.json()["id"]
    customer_id = await _customer_request(client, farm.business_id)
    base = f"/v1/office/businesses/{farm.business_id}/requests"

    r = await client.patch(f"{base}/{incoming_id}", json={"status": "IN_PROGRESS"}, headers=farm.headers)
    assert r.status_code == 200
    assert r.json()["status"] == "IN_PROGRESS"

    r = await client.patch(f"{base}/request_{customer_id}", json={"status": "COMPLETED"}, headers=farm.headers)
    assert r.status_code == 200

    r = await client.patch(f"{base}/{incoming_id}", json={"status": "DONE"}, headers=farm.headers)
    assert r.status_code == 400

    # The sender cannot change the recipient's request.
    r = await client.patch(
        f"/v1/office/businesses/{buyer.business_id}/requests/{incoming_id}",
        json={"status": "CANCELLED"},
        headers=buyer.headers,
    )
    assert r.status_code == 404

    r = await client.get(f"/v1/office/businesses/{farm.business_id}/requests/incoming", headers=farm.headers)
    assert {e["status"] for e in r.json()["requests"]} == {"IN_PROGRESS", "COMPLETED"}


@pytest.mark.asyncio
async def test_business_level_picker(client: httpx.AsyncClient, signup) -> None:
    shop = await signup(email="shop@example.com", name="Shop")
    url = f"/v1/office/businesses/{shop.business_id}/assign-performer"

    r = await client.post(url, json={"role": "COURIER"}, headers=shop.headers)
    assert r.status_code == 400

    # No requests yet: a technical request is created to hold the assignment.
    r = await client.post(url, json={"role": "PICKER"}, headers=shop.headers)
    assert r.status_code == 200
    picker = r.json()["picker"]
    assert picker["label"] == "Picker 1"
    match = re.fullmatch(r"http://app\.test/pick/invite/([0-9a-f]{48})", picker["url"])
    assert match

    # Ensuring again reuses the live invite.
    r = await client.post(url, json={"role": "picker"}, headers=shop.headers)
    assert r.json()["picker"]["invite_id"] == picker["invite_id"]

    r = await client.get(url, headers=shop.headers)
    assert [p["invite_id"] for p in r.json()["pickers"]] == [picker["invite_id"]]

    token = match.group(1)
    r = await client.get(f"/v1/picker/invites/{token}")
    assert r.status_code == 200
    assert r.json()["used_at"] is not None
    assert r.json()["business"]["id"] == shop.business_id

    r = await client.delete(url, headers=shop.headers)
    assert r.json() == {"ok": True}
    assert (await client.get(url, headers=shop.headers)).json()["pickers"] == []
    assert (await client.get(f"/v1/picker/invites/{token}")).status_code == 404

    # A revoked invite is replaced on the same assignment.
    r = await client.post(url, json={"role": "PICKER"}, headers=shop.headers)
    assert r.json()["picker"]["assignment_id"] == picker["assignment_id"]
    assert r.json()["picker"]["invite_id"] != picker["invite_id"]


@pytest.mark.asyncio
async def test_request_level_picker(client: httpx.AsyncClient, signup) -> None:
    shop = await signup(email="shop@example.com", name="Shop")
    other = await signup(email="other@example.com", name="Other")
    request_id = await _customer_request(client, shop.business_id)
    url = f"/v1/office/requests/{request_id}/assign-performer"

    r = await client.get(url, headers=shop.headers)
    assert r.json() == {"assignment": None, "invite": None}

    assert (await client.get(url, headers=other.headers)).status_code == 403
    assert (await client.get(f"/v1/office/requests/{uuid.uuid4()}/assign-performer", headers=shop.headers)).status_code == 404

    r = await client.post(url, json={"role": "PICKER"}, headers=shop.headers)
    assert r.status_code == 200
    assert r.json()["assignment"]["request_id"] == request_id
    assert r.json()["invite"]["url"].startswith("http://app.test/pick/invite/")

    r = await client.get(url, headers=shop.headers)
    assert r.json()["assignment"]["role"] == "PICKER"


@pytest.mark.asyncio
async def test_revoke_targets_newest_invite_after_rebind(client: httpx.AsyncClient, signup) -> None:
    shop = await signup(email="shop@example.com", name="Shop")
    first = await _customer_request(client, shop.business_id)
    second = await _customer_request(client, shop.business_id)
    business_url = f"/v1/office/businesses/{shop.business_id}/assign-performer"

    def request_url(request_id: str) -> str:
        return f"/v1/office/requests/{request_id}/assign-performer"

    await client.post(request_url(first), json={"role": "PICKER"}, headers=shop.headers)
    assert (await client.delete(business_url, headers=shop.headers)).json() == {"ok": True}

    r = await client.post(request_url(second), json={"role": "PICKER"}, headers=shop.headers)
    second_invite = r.json()["invite"]["id"]
    # The first request keeps its older assignment but gets a fresh invite.
    r = await client.post(request_url(first), json={"role": "PICKER"}, headers=shop.headers)
    rebound_invite = r.json()["invite"]["id"]

    r = await client.get(business_url, headers=shop.headers)
    assert [p["invite_id"] for p in r.json()["pickers"]] == [rebound_invite, second_invite]

    assert (await client.delete(business_url, headers=shop.headers)).json() == {"ok": True}
    r = await client.get(business_url, headers=shop.headers)
    assert [p["invite_id"] for p in r.json()["pickers"]] == [second_invite]


@pytest.mark.asyncio
async def test_invoices(client: httpx.AsyncClient, signup) -> None:
    shop = await signup(email="shop@example.com", name="Shop")
    other = await signup(email="other@example.com", name="Other")
    url = f"/v1/office/businesses/{shop.business_id}/invoices"

    r = await client.post(url, json={"client_name": "Anna", "amount": 0}, headers=shop.headers)
    assert r.status_code == 400
    r = await client.post(url, json={"amount": 10}, headers=shop.headers)
    assert r.status_code == 400

    foreign_request = await _customer_request(client, other.business_id)
    r = await client.post(
        url, json={"client_name": "Anna", "amount": 10, "request_id": foreign_request}, headers=shop.headers
    )
    assert r.status_code == 400
    r = await client.post(
        url, json={"client_name": "Anna", "amount": 10, "request_id": str(uuid.uuid4())}, headers=shop.headers
    )
    assert r.status_code == 404

    own_request = await _customer_request(client, shop.business_id)
    r = await client.post(
        url, json={"client_name": "Anna", "amount": "1500.50", "request_id": own_request}, headers=shop.headers
    )
    assert r.status_code == 201, r.text
    invoice = r.json()
    assert re.fullmatch(r"INV-\d{14}-1", invoice["number"])
    assert invoice["currency"] == "RUB"
    assert invoice["status"] == "DRAFT"
    assert invoice["amount"] == 1500.5

    r = await client.get(url, headers=shop.headers)
    assert [i["id"] for i in r.json()] == [invoice["id"]]


@pytest.mark.asyncio
async def test_invoice_numbers_are_scoped_per_business(client: httpx.AsyncClient, signup) -> None:
    first = await signup(email="first@example.com", name="First")
    second = await signup(email="second@example.com", name="Second")
    payload = {"client_name": "Ivan", "amount": 10}

    numbers = []
    for resident in (first, second, first):
        r = await client.post(
            f"/v1/office/businesses/{resident.business_id}/invoices", json=payload, headers=resident.headers
        )
        assert r.status_code == 201, r.text
        numbers.append(r.json()["number"])

    assert [n.rsplit("-", 1)[1] for n in numbers] == ["1", "1", "2"]
