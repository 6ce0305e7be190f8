"""
bizdir.api.routers.office.prices

Office endpoints for a supplier's price lists.

Responsibilities:
- Create/read/replace/delete price lists with their rows in one transaction.
- Derive marked-up or discounted lists from a base list.
- Assign lists to counterparties by resident number (partner links start PENDING).
- Show lists other suppliers assigned to this business.
- Import lists from CSV exports or .xlsx workbooks (parse for review, then commit).
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from bizdir.api.deps import db_session
from bizdir.api.schemas import OkResponse
from bizdir.api.tenancy import owned_business
from bizdir.db.base import utcnow
from bizdir.db.models import (
    Business,
    ModifierType,
    PriceAssignment,
    PriceList,
    PriceListKind,
    PriceListRow,
)
from bizdir.db.repositories.price_lists import AssignmentRepo, PriceListRepo
from bizdir.db.repositories.profiles import ProfileRepo
from bizdir.observability.logging import get_logger
from bizdir.services.price_import import PriceImportError, parse_price_file, rows_from_items
from bizdir.services.pricing import build_rows, derive_rows, price_to_float, valid_percent

log = get_logger(__name__)

router = APIRouter(prefix="/businesses/{business_id}")

DEFAULT_PRICE_LIST_NAME = "Price 1"
RESIDENT_NUMBER = re.compile(r"^L7-[A-Z0-9]{8}$")


class PriceRowIn(BaseModel):
    name: str | None = None
    unit: str | None = None
    price_with_vat: float | str | None = None
    price_without_vat: float | str | None = None
    extra: dict[str, Any] | None = None


class PriceListIn(BaseModel):
    name: str | None = None
    kind: PriceListKind | None = None
    category: str | None = None
    derived_from_id: uuid.UUID | None = None
    modifier_type: ModifierType | None = None
    percent: Decimal | None = None
    columns: list[dict[str, Any]] | None = None
    rows: list[PriceRowIn] | None = None


class AssignRequest(BaseModel):
    resident_number: str | None = None


class ImportParseRequest(BaseModel):
    filename: str = Field(min_length=1)
    # CSV text, or the raw file (required for .xlsx) as base64.
    content: str | None = None
    content_base64: str | None = None


class ImportCommitRequest(BaseModel):
    name: str | None = None
    items: list[dict[str, Any]]


# --- Serialization -------------------------------------------------------------


def _row_out(row: PriceListRow) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "order": row.order,
        "name": row.name,
        "unit": row.unit,
        "price_with_vat": price_to_float(row.price_with_vat),
        "price_without_vat": price_to_float(row.price_without_vat),
        "extra": row.extra,
    }


def _assignment_out(link: PriceAssignment) -> dict[str, Any]:
    counterparty = link.counterparty_business
    profile = counterparty.profile if counterparty is not None else None
    return {
        "id": str(link.id),
        "counterparty_business_id": str(link.counterparty_business_id),
        "counterparty_name": counterparty.name if counterparty is not None else None,
        "resident_number": profile.resident_number if profile else None,
        "display_name": profile.display_name if profile else None,
        "status": link.status.value,
        "created_at": link.created_at.isoformat(),
        "responded_at": link.responded_at.isoformat() if link.responded_at else None,
    }


def _summary_out(pl: PriceList) -> dict[str, Any]:
    return {
        "id": str(pl.id),
        "name": pl.name,
        "kind": pl.kind.value,
        "category": pl.category,
        "derived_from_id": str(pl.derived_from_id) if pl.derived_from_id else None,
        "modifier_type": pl.modifier_type.value if pl.modifier_type else None,
        "percent": price_to_float(pl.percent),
        "columns": pl.columns,
        "created_at": pl.created_at.isoformat(),
        "updated_at": pl.updated_at.isoformat(),
    }


def _detail_out(pl: PriceList) -> dict[str, Any]:
    return {
        **_summary_out(pl),
        "rows": [_row_out(r) for r in pl.rows],
        "assignments": [_assignment_out(a) for a in pl.assignments],
    }


# --- Helpers --------------------------------------------------------------------


async def _own_price_list(business: Business, price_id: uuid.UUID, repo: PriceListRepo) -> PriceList:
    pl = await repo.get_detail(price_id)
    if pl is None or pl.business_id != business.id:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Price list not found")
    return pl


async def _rows_for(
    body: PriceListIn, business: Business, kind: PriceListKind, repo: PriceListRepo
) -> list[PriceListRow]:
    if kind == PriceListKind.base:
        return build_rows(r.model_dump() for r in body.rows or [])

    if body.derived_from_id is None or body.modifier_type is None:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="derived_from_id and modifier_type are required"
        )
    if body.percent is None or not valid_percent(body.percent):
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="percent must be in (0, 999]")
    base = await repo.get_detail(body.derived_from_id)
    if base is None or base.business_id != business.id:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Base price list not found")

    # Explicit rows win over recomputing from the base.
    if body.rows:
        return build_rows(r.model_dump() for r in body.rows)
    return derive_rows(base.rows, body.modifier_type, body.percent)


def _normalize_resident_number(raw: str | None) -> str:
    number = (raw or "").strip().upper()
    if not RESIDENT_NUMBER.match(number):
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Invalid resident number")
    return number


# --- Price lists ----------------------------------------------------------------


@router.get("/prices")
async def list_price_lists(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    lists = await PriceListRepo(session).list_for_business(business.id)
    return {
        "price_lists": [
            {**_summary_out(pl), "rows_count": len(pl.rows), "assignments_count": len(pl.assignments)}
            for pl in lists
        ]
    }


@router.post("/prices", status_code=HTTP_201_CREATED)
async def create_price_list(
    body: PriceListIn,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = PriceListRepo(session)
    kind = body.kind or PriceListKind.base
    rows = await _rows_for(body, business, kind, repo)

    pl = await repo.create(
        business_id=business.id,
        name=(body.name or "").strip() or DEFAULT_PRICE_LIST_NAME,
        kind=kind,
        category=body.category or None,
        derived_from_id=body.derived_from_id if kind == PriceListKind.derived else None,
        modifier_type=body.modifier_type if kind == PriceListKind.derived else None,
        percent=body.percent if kind == PriceListKind.derived else None,
        columns=body.columns,
        rows=rows,
    )
    await session.commit()
    log.info("price_list_created", business_id=str(business.id), price_list_id=str(pl.id), rows=len(rows))

    # Reload so rows and assignments reflect the committed state.
    return _detail_out(await _own_price_list(business, pl.id, repo))


@router.get("/prices/{price_id}")
async def get_price_list(
    price_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return _detail_out(await _own_price_list(business, price_id, PriceListRepo(session)))


@router.put("/prices/{price_id}")
async def replace_price_list(
    price_id: uuid.UUID,
    body: PriceListIn,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = PriceListRepo(session)
    pl = await _own_price_list(business, price_id, repo)

    provided = body.model_fields_set
    if "name" in provided:
        pl.name = (body.name or "").strip() or DEFAULT_PRICE_LIST_NAME
    if "category" in provided:
        pl.category = body.category or None
    if "columns" in provided:
        pl.columns = body.columns
    if "modifier_type" in provided:
        pl.modifier_type = body.modifier_type
    if "percent" in provided:
        if body.percent is not None and not valid_percent(body.percent):
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="percent must be in (0, 999]")
        pl.percent = body.percent

    await repo.replace_rows(pl, build_rows(r.model_dump() for r in body.rows or []))
    await session.commit()
    log.info("price_list_replaced", price_list_id=str(pl.id), rows=len(body.rows or []))

    # Reload so rows and assignments reflect the committed state.
    return _detail_out(await _own_price_list(business, pl.id, repo))


@router.delete("/prices/{price_id}", response_model=OkResponse)
async def delete_price_list(
    price_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> OkResponse:
    repo = PriceListRepo(session)
    pl = await _own_price_list(business, price_id, repo)
    await repo.delete(pl)
    await session.commit()
    log.info("price_list_deleted", price_list_id=str(price_id))
    return OkResponse()


# --- Assignments ----------------------------------------------------------------


@router.post("/prices/{price_id}/assign")
async def assign_price_list(
    price_id: uuid.UUID,
    body: AssignRequest,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    pl = await _own_price_list(business, price_id, PriceListRepo(session))
    number = _normalize_resident_number(body.resident_number)

    profile = await ProfileRepo(session).get_by_resident_number(number)
    if profile is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Counterparty not found")
    if profile.business_id == business.id:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="Cannot assign a price list to yourself"
        )

    links = AssignmentRepo(session)
    await links.upsert_pending(price_list_id=pl.id, counterparty_business_id=profile.business_id)
    await session.commit()
    log.info("price_list_assigned", price_list_id=str(pl.id), counterparty=number)

    return {"assignments": [_assignment_out(a) for a in await links.list_for_price_list(pl.id)]}


@router.delete("/prices/{price_id}/assign")
async def unassign_price_list(
    price_id: uuid.UUID,
    resident_number: str,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    pl = await _own_price_list(business, price_id, PriceListRepo(session))
    number = _normalize_resident_number(resident_number)

    profile = await ProfileRepo(session).get_by_resident_number(number)
    if profile is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Counterparty not found")

    links = AssignmentRepo(session)
    if not await links.remove(price_list_id=pl.id, counterparty_business_id=profile.business_id):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Assignment not found")
    await session.commit()
    return {"assignments": [_assignment_out(a) for a in await links.list_for_price_list(pl.id)]}


@router.get("/assigned-prices")
async def list_assigned_prices(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    links = await AssignmentRepo(session).addressed_to(business.id)
    out = []
    for link in links:
        pl = link.price_list
        source = pl.business
        out.append(
            {
                "id": str(link.id),
                "status": link.status.value,
                "created_at": link.created_at.isoformat(),
                "responded_at": link.responded_at.isoformat() if link.responded_at else None,
                "price_list": {
                    "id": str(pl.id),
                    "name": pl.name,
                    "kind": pl.kind.value,
                    "category": pl.category,
                    "rows_count": len(pl.rows),
                },
                "source_business": {
                    "id": str(source.id),
                    "name": source.name,
                    "legal_name": source.display_legal_name,
                    "resident_number": source.profile.resident_number if source.profile else None,
                },
            }
        )
    return {"assigned_prices": out}


# --- Import ---------------------------------------------------------------------


@router.post("/price-lists/import/parse")
async def parse_price_import(
    body: ImportParseRequest,
    business: Business = Depends(owned_business),
) -> dict[str, Any]:
    data: bytes | None = None
    if body.content_base64:
        try:
            data = base64.b64decode(body.content_base64, validate=True)
        except binascii.Error as e:
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="content_base64 is not valid base64"
            ) from e
    if body.content is None and data is None:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="content or content_base64 is required"
        )

    try:
        result = parse_price_file(filename=body.filename, content=body.content, data=data)
    except PriceImportError as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(e)) from e
    log.info("price_import_parsed", business_id=str(business.id), items=len(result.items))
    return {"items": [i.as_dict() for i in result.items], "warnings": result.warnings}


@router.post("/price-lists/import/commit", status_code=HTTP_201_CREATED)
async def commit_price_import(
    body: ImportCommitRequest,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    rows, columns = rows_from_items(body.items)
    if not rows:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="No items to import")

    name = (body.name or "").strip() or f"Price import ({utcnow():%Y-%m-%d %H:%M})"
    pl = await PriceListRepo(session).create(
        business_id=business.id, name=name, kind=PriceListKind.base, columns=columns, rows=rows
    )
    await session.commit()
    log.info("price_import_committed", business_id=str(business.id), price_list_id=str(pl.id))
    return {"price_list_id": str(pl.id), "count": len(rows)}


# --- Module Notes -----------------------------------------------------------
# Assigning never activates a link; the counterparty accepts it from the partnership page.
