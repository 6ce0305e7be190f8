"""
tests.test_office_profile_media

Resident office: tenant isolation, showcase profile, requisites, photos and portfolio.
"""

from __future__ import annotations

import re

import httpx
import pytest

from bizdir.settings import Settings


@pytest.mark.asyncio
async def test_owner_check(client: httpx.AsyncClient, signup, admin_headers) -> None:
    alice = await signup(email="alice@example.com", name="Alice Shop")
    bob = await signup(email="bob@example.com", name="Bob Shop")

    r = await client.get(f"/v1/office/businesses/{alice.business_id}/profile", headers=bob.headers)
    assert r.status_code == 403

    r = await client.get(
        "/v1/office/businesses/00000000-0000-0000-0000-000000000000/profile", headers=bob.headers
    )
    assert r.status_code == 404

    # Admins manage every tenant.
    r = await client.get(f"/v1/office/businesses/{alice.business_id}/profile", headers=admin_headers)
    assert r.status_code == 200

    r = await client.get("/v1/office/businesses", headers=admin_headers)
    assert {b["name"] for b in r.json()} == {"Alice Shop", "Bob Shop"}


@pytest.mark.asyncio
async def test_profile_is_created_with_defaults(client: httpx.AsyncClient, signup) -> None:
    resident = await signup()
    r = await client.get(f"/v1/office/businesses/{resident.business_id}/profile", headers=resident.headers)
    assert r.status_code == 200
    profile = r.json()
    assert re.fullmatch(r"L7-[A-Z0-9]{8}", profile["resident_number"])
    assert (profile["stats_cases"], profile["stats_projects"], profile["stats_cities"]) == (40, 2578, 4)

    # Idempotent: the resident number does not change.
    r = await client.get(f"/v1/office/businesses/{resident.business_id}/profile", headers=resident.headers)
    assert r.json()["resident_number"] == profile["resident_number"]


@pytest.mark.asyncio
async def test_profile_update(client: httpx.AsyncClient, signup, settings: Settings) -> None:
    resident = await signup()
    url = f"/v1/office/businesses/{resident.business_id}/profile"
    h = resident.headers

    r = await client.put(url, json={"display_name": "Сад"}, headers=h)
    assert r.status_code == 400
    assert r.json()["detail"] == "INVALID_DISPLAY_NAME_LATIN_ONLY"

    r = await client.put(url, json={"stats_cases": -1}, headers=h)
    assert r.status_code == 400

    r = await client.put(
        url,
        json={
            "display_name": "Green Garden",
            "phone": "+7 999 000",
            "cities": ["Moscow", "Tver"],
            "featured_services": ["Delivery", " ", "Catering", "Boxes", "Gifts", "Extra"],
        },
        headers=h,
    )
    assert r.status_code == 200
    profile = r.json()
    assert profile["display_name"] == "Green Garden"
    assert profile["cities"] == ["Moscow", "Tver"]
    assert profile["services"] == ["Delivery", "Catering", "Boxes", "Gifts"][: settings.max_featured_services]

    # Empty string clears, omitted keys stay.
    r = await client.put(url, json={"phone": ""}, headers=h)
    assert r.json()["phone"] is None
    assert r.json()["display_name"] == "Green Garden"


@pytest.mark.asyncio
async def test_requisites(client: httpx.AsyncClient, signup) -> None:
    resident = await signup()
    url = f"/v1/office/businesses/{resident.business_id}/requisites"

    r = await client.put(url, json={"legal_name": "  LLC Green  ", "inn": "7701", "bank": "x" * 600}, headers=resident.headers)
    assert r.status_code == 200
    data = r.json()
    assert data["legal_name"] == "LLC Green"
    assert len(data["bank"]) == 500

    r = await client.put(url, json={"inn": ""}, headers=resident.headers)
    assert r.json()["inn"] is None
    assert r.json()["legal_name"] == "LLC Green"

    r = await client.get(url, headers=resident.headers)
    assert r.json()["legal_name"] == "LLC Green"


@pytest.mark.asyncio
async def test_business_photos_limit_and_delete(client: httpx.AsyncClient, signup, settings: Settings) -> None:
    alice = await signup(email="alice@example.com", name="Alice Shop")
    bob = await signup(email="bob@example.com", name="Bob Shop")
    base = f"/v1/office/businesses/{alice.business_id}/photos"

    ids = []
    for n in range(settings.max_business_photos):
        r = await client.post(base, json={"url": f"https://cdn.test/{n}.jpg"}, headers=alice.headers)
        assert r.status_code == 201
        ids.append(r.json()["id"])
    r = await client.post(base, json={"url": "https://cdn.test/over.jpg"}, headers=alice.headers)
    assert r.status_code == 400

    # Bob cannot delete Alice's photo through his own business.
    r = await client.delete(f"/v1/office/businesses/{bob.business_id}/photos/{ids[0]}", headers=bob.headers)
    assert r.status_code == 403

    r = await client.delete(f"{base}/{ids[0]}", headers=alice.headers)
    assert r.status_code == 200
    r = await client.get(base, headers=alice.headers)
    assert len(r.json()) == settings.max_business_photos - 1


@pytest.mark.asyncio
async def test_portfolio_cover_lifecycle(client: httpx.AsyncClient, signup, settings: Settings) -> None:
    resident = await signup()
    base = f"/v1/office/businesses/{resident.business_id}/portfolio-items"
    h = resident.headers

    r = await client.post(base, json={"comment": "Kitchen", "urls": ["https://cdn.test/k1.jpg"]}, headers=h)
    assert r.status_code == 201
    item = r.json()
    assert item["cover_url"] is None

    r = await client.post(f"{base}/{item['id']}/photos", json={"urls": ["https://cdn.test/k2.jpg"]}, headers=h)
    assert r.status_code == 201
    second = r.json()[0]

    r = await client.patch(f"{base}/{item['id']}", json={"cover_photo_id": second["id"]}, headers=h)
    assert r.status_code == 200
    assert r.json()["cover_url"] == "https://cdn.test/k2.jpg"

    r = await client.patch(
        f"{base}/{item['id']}", json={"cover_photo_id": "00000000-0000-0000-0000-000000000000"}, headers=h
    )
    assert r.status_code == 404

    # Deleting the cover photo clears the cover.
    r = await client.delete(f"{base}/{item['id']}/photos/{second['id']}", headers=h)
    assert r.status_code == 200
    [listed] = (await client.get(base, headers=h)).json()
    assert listed["cover_url"] is None
    assert [p["url"] for p in listed["photos"]] == ["https://cdn.test/k1.jpg"]

    too_many = [f"https://cdn.test/{n}.jpg" for n in range(settings.max_portfolio_photos)]
    r = await client.post(f"{base}/{item['id']}/photos", json={"urls": too_many}, headers=h)
    assert r.status_code == 400

    r = await client.post(f"{base}/{item['id']}/photos", json={"urls": [" "]}, headers=h)
    assert r.status_code == 400

    r = await client.delete(f"{base}/{item['id']}", headers=h)
    assert r.status_code == 200
    assert (await client.get(base, headers=h)).json() == []
