"""
bizdir.api.routers.office.partnership

Buyer-side partnership endpoints: accepting supplier price lists, comparing
offers and pricing a shopping list.

Responsibilities:
- List active counterparties and pending partnership requests.
- Accept/decline a pending link addressed to this business.
- End a partnership (both directions) with one call.
- Price comparison table and request summary across ACTIVE suppliers.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from bizdir.api.deps import db_session
from bizdir.api.tenancy import owned_business
from bizdir.db.init_db import DEFAULT_PRICE_CATEGORY
from bizdir.db.models import Business, PartnerLinkStatus, PriceAssignment
from bizdir.db.repositories.price_lists import AssignmentRepo
from bizdir.observability.logging import get_logger
from bizdir.services.price_matching import build_comparison, build_request_summary

log = get_logger(__name__)

router = APIRouter(prefix="/businesses/{business_id}")

_ACTIONS: dict[str, PartnerLinkStatus] = {
    "accept": PartnerLinkStatus.active,
    "decline": PartnerLinkStatus.declined,
}


class RespondRequest(BaseModel):
    action: str | None = None


class SummaryItem(BaseModel):
    name: str | None = None
    quantity: str | int | float | None = None
    unit: str | None = None


class SummaryRequest(BaseModel):
    items: list[SummaryItem] = []


def _supplier_out(link: PriceAssignment) -> dict[str, Any]:
    supplier: Business = link.price_list.business
    return {
        "business_id": str(supplier.id),
        "name": supplier.name,
        "legal_name": supplier.display_legal_name,
        "resident_number": supplier.profile.resident_number if supplier.profile else None,
    }


def _link_out(link: PriceAssignment) -> dict[str, Any]:
    pl = link.price_list
    return {
        "link_id": str(link.id),
        "status": link.status.value,
        "created_at": link.created_at.isoformat(),
        "responded_at": link.responded_at.isoformat() if link.responded_at else None,
        "supplier": _supplier_out(link),
        "price_list": {"id": str(pl.id), "name": pl.name, "category": pl.category, "rows_count": len(pl.rows)},
    }


@router.get("/partnership")
async def get_partnership(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    links = AssignmentRepo(session)
    active = await links.addressed_to(business.id, status=PartnerLinkStatus.active)
    pending = await links.addressed_to(business.id, status=PartnerLinkStatus.pending)

    counterparties: dict[uuid.UUID, dict[str, Any]] = {}
    for link in active:
        supplier_id = link.price_list.business_id
        entry = counterparties.get(supplier_id)
        if entry is None:
            entry = {**_supplier_out(link), "price_lists": []}
            counterparties[supplier_id] = entry
        entry["price_lists"].append({"id": str(link.price_list.id), "name": link.price_list.name})

    return {
        "active_counterparties": list(counterparties.values()),
        "incoming_requests": [_link_out(link) for link in pending],
    }


@router.post("/partnership/requests/{link_id}")
async def respond_partnership(
    link_id: uuid.UUID,
    body: RespondRequest,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    status = _ACTIONS.get((body.action or "").strip().lower())
    if status is None:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="action must be accept or decline")

    links = AssignmentRepo(session)
    link = await links.get(link_id)
    if link is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Partnership request not found")
    if link.counterparty_business_id != business.id:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Forbidden")
    if link.status != PartnerLinkStatus.pending:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Partnership request already handled")

    await links.respond(link, status)
    await session.commit()
    log.info("partnership_responded", link_id=str(link.id), status=status.value)
    return {
        "id": str(link.id),
        "status": link.status.value,
        "responded_at": link.responded_at.isoformat() if link.responded_at else None,
    }


@router.delete("/partnership/counterparties/{partner_id}")
async def end_partnership(
    partner_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    declined = await AssignmentRepo(session).decline_active_between(business.id, partner_id)
    await session.commit()
    log.info("partnership_ended", business_id=str(business.id), partner_id=str(partner_id), links=declined)
    return {"ok": True, "declined": declined}


@router.get("/price-comparison")
async def price_comparison(
    category: str | None = None,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    active = await AssignmentRepo(session).addressed_to(business.id, status=PartnerLinkStatus.active)
    return build_comparison(
        counterparty_business_id=business.id,
        assignments=active,
        category=(category or "").strip() or DEFAULT_PRICE_CATEGORY,
    )


@router.post("/request-summary")
async def request_summary(
    body: SummaryRequest,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    items = [
        {
            "name": item.name.strip(),
            "quantity": "" if item.quantity is None else str(item.quantity),
            "unit": (item.unit or "").strip(),
        }
        for item in body.items
        if item.name and item.name.strip()
    ]
    if not items:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="At least one named item is required")

    active = await AssignmentRepo(session).addressed_to(business.id, status=PartnerLinkStatus.active)
    return build_request_summary(items=items, assignments=active)
