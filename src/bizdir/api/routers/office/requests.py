"""
bizdir.api.routers.office.requests

Office endpoints for inbound work: partner purchase requests, customer requests,
picker assignment and invoices.

Responsibilities:
- Send purchase requests to partner businesses and list what came in.
- Move requests through NEW -> IN_PROGRESS -> COMPLETED / CANCELLED.
- Assign a PICKER via invite links, at business level or for one request.
- Issue invoices numbered per business.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from bizdir.api.deps import db_session, settings_dep
from bizdir.api.schemas import InvoiceOut
from bizdir.api.tenancy import ensure_can_manage, office_principal, owned_business
from bizdir.auth.models import Principal
from bizdir.db.base import utcnow
from bizdir.db.models import (
    AssignmentRole,
    Business,
    IncomingRequest,
    IncomingRequestItem,
    Request,
    RequestAssignment,
    RequestStatus,
)
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.invoices import InvoiceRepo
from bizdir.db.repositories.pickers import PickerRepo
from bizdir.db.repositories.requests import IncomingRequestRepo, RequestRepo
from bizdir.observability.logging import get_logger
from bizdir.services.pickers import PickerService
from bizdir.services.pricing import parse_price, price_to_float
from bizdir.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/businesses/{business_id}")
request_router = APIRouter(prefix="/requests/{request_id}")

CUSTOMER_SENDER_LABEL = "Customer"
CUSTOMER_ITEM_UNIT = "pcs"
DEFAULT_CURRENCY = "RUB"
_CUSTOMER_PREFIX = "request_"


class SendItem(BaseModel):
    name: str | None = None
    quantity: str | int | float | None = None
    unit: str | None = None
    price: float | str | None = None
    sum: float | str | None = None


class SendRequest(BaseModel):
    recipient_business_id: uuid.UUID | None = None
    category: str | None = None
    total: float | str | None = None
    items: list[SendItem] = []


class StatusUpdate(BaseModel):
    status: RequestStatus


class PerformerRequest(BaseModel):
    role: str | None = None


class InvoiceCreate(BaseModel):
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    amount: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    currency: str | None = None
    due_date: datetime | None = None
    request_id: uuid.UUID | None = None


def _require_picker_role(body: PerformerRequest) -> None:
    if (body.role or "").strip().upper() != AssignmentRole.picker.value:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="role must be PICKER")


# --- Partner and customer requests ----------------------------------------------


def _incoming_out(r: IncomingRequest) -> dict[str, Any]:
    return {
        "id": str(r.id),
        "type": "incoming",
        "request_id": None,
        "sender_business_id": str(r.sender_business_id),
        "sender_legal_name": r.sender.display_legal_name,
        "category": r.category,
        "total": price_to_float(r.total),
        "status": r.status.value,
        "created_at": r.created_at.isoformat(),
        "items": [
            {
                "id": str(i.id),
                "name": i.name,
                "quantity": i.quantity,
                "unit": i.unit,
                "price": float(i.price),
                "sum": float(i.sum),
            }
            for i in r.items
        ],
    }


def _customer_out(r: Request) -> dict[str, Any]:
    # Customer requests are shown as a single line so both kinds share one table.
    return {
        "id": f"{_CUSTOMER_PREFIX}{r.id}",
        "type": "request",
        "request_id": str(r.id),
        "sender_business_id": None,
        "sender_legal_name": r.client_name or CUSTOMER_SENDER_LABEL,
        "category": None,
        "total": None,
        "status": r.status.value,
        "created_at": r.created_at.isoformat(),
        "items": [
            {
                "id": f"{r.id}_item",
                "name": r.description or r.title,
                "quantity": "1",
                "unit": CUSTOMER_ITEM_UNIT,
                "price": 0.0,
                "sum": 0.0,
            }
        ],
    }


@router.post("/requests/send", status_code=HTTP_201_CREATED)
async def send_request(
    body: SendRequest,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    if body.recipient_business_id is None:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="recipient_business_id is required")
    recipient = await BusinessRepo(session).get(body.recipient_business_id)
    if recipient is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Recipient business not found")

    items: list[IncomingRequestItem] = []
    for item in body.items:
        name = (item.name or "").strip()
        if not name:
            continue
        items.append(
            IncomingRequestItem(
                name=name,
                quantity="" if item.quantity is None else str(item.quantity),
                unit=(item.unit or "").strip(),
                price=parse_price(item.price) or Decimal(0),
                sum=parse_price(item.sum) or Decimal(0),
                sort_order=len(items),
            )
        )

    incoming = await IncomingRequestRepo(session).create(
        sender_business_id=business.id,
        recipient_business_id=recipient.id,
        category=(body.category or "").strip() or None,
        total=parse_price(body.total),
        items=items,
    )
    await session.commit()
    log.info(
        "partner_request_sent",
        sender=str(business.id),
        recipient=str(recipient.id),
        request_id=str(incoming.id),
        items=len(items),
    )
    return {"id": str(incoming.id), "status": incoming.status.value, "items_count": len(items)}


@router.get("/requests/incoming")
async def list_incoming_requests(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    incoming = await IncomingRequestRepo(session).list_for_recipient(business.id)
    own = await RequestRepo(session).list_for_business(business.id)

    merged = [(r.created_at, _incoming_out(r)) for r in incoming]
    merged += [(r.created_at, _customer_out(r)) for r in own]
    merged.sort(key=lambda pair: pair[0], reverse=True)
    return {"requests": [entry for _, entry in merged]}


@router.patch("/requests/{request_id}")
async def update_request_status(
    request_id: str,
    body: StatusUpdate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    raw = request_id.removeprefix(_CUSTOMER_PREFIX)
    try:
        rid = uuid.UUID(raw)
    except ValueError as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Request not found") from e

    target: IncomingRequest | Request | None = None
    incoming = await IncomingRequestRepo(session).get(rid)
    if incoming is not None and incoming.recipient_business_id == business.id:
        target = incoming
    else:
        own = await RequestRepo(session).get(rid)
        if own is not None and own.business_id == business.id:
            target = own
    if target is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Request not found")

    target.status = body.status
    await session.commit()
    log.info("request_status_changed", request_id=str(rid), status=body.status.value)
    return {"id": str(rid), "status": target.status.value}


# --- Pickers (business level) ------------------------------------------------------


@router.get("/assign-performer")
async def list_performers(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    service = PickerService(session=session, settings=settings)
    return {"pickers": await service.live_pickers(business.id)}


@router.post("/assign-performer")
async def assign_performer(
    body: PerformerRequest,
    business: Business = Depends(owned_business),
    principal: Principal = Depends(office_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    _require_picker_role(body)
    service = PickerService(session=session, settings=settings)
    assignment = await service.ensure_for_business(business, actor_id=principal.user_id)
    await session.commit()
    return {"picker": service.describe(assignment)}


@router.delete("/assign-performer")
async def revoke_performer(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    revoked = await PickerService(session=session, settings=settings).revoke_latest(business.id)
    await session.commit()
    return {"ok": revoked}


# --- Pickers (request level) -------------------------------------------------------


async def _managed_request(
    request_id: uuid.UUID,
    principal: Principal = Depends(office_principal),
    session: AsyncSession = Depends(db_session),
) -> Request:
    request = await RequestRepo(session).get(request_id)
    if request is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Request not found")
    ensure_can_manage(await BusinessRepo(session).get(request.business_id), principal)
    return request


def _request_assignment_out(assignment: RequestAssignment | None, service: PickerService) -> dict[str, Any]:
    if assignment is None:
        return {"assignment": None, "invite": None}
    invite = assignment.invite
    return {
        "assignment": {
            "id": str(assignment.id),
            "request_id": str(assignment.request_id),
            "role": assignment.role.value,
            "created_at": assignment.created_at.isoformat(),
        },
        "invite": (
            {
                "id": str(invite.id),
                "label": invite.label,
                "url": service.invite_url(invite.token),
                "created_at": invite.created_at.isoformat(),
                "used_at": invite.used_at.isoformat() if invite.used_at else None,
                "revoked_at": invite.revoked_at.isoformat() if invite.revoked_at else None,
            }
            if invite is not None
            else None
        ),
    }


@request_router.get("/assign-performer")
async def get_request_performer(
    request: Request = Depends(_managed_request),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    assignment = await PickerRepo(session).get_assignment(request.id)
    return _request_assignment_out(assignment, PickerService(session=session, settings=settings))


@request_router.post("/assign-performer")
async def assign_request_performer(
    body: PerformerRequest,
    request: Request = Depends(_managed_request),
    principal: Principal = Depends(office_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    _require_picker_role(body)
    service = PickerService(session=session, settings=settings)
    assignment = await service.ensure_for_request(request, actor_id=principal.user_id)
    await session.commit()
    return _request_assignment_out(assignment, service)


# --- Invoices -------------------------------------------------------------------------


@router.get("/invoices", response_model=list[InvoiceOut])
async def list_invoices(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> list[InvoiceOut]:
    invoices = await InvoiceRepo(session).list_for_business(business.id)
    return [InvoiceOut.model_validate(i) for i in invoices]


@router.post("/invoices", response_model=InvoiceOut, status_code=HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> InvoiceOut:
    client_name = (body.client_name or "").strip()
    if not client_name:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="client_name is required")
    if body.amount is None or body.amount <= 0:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="amount must be positive")

    if body.request_id is not None:
        request = await RequestRepo(session).get(body.request_id)
        if request is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Request not found")
        if request.business_id != business.id:
            raise HTTPException(
                status_code=HTTP_400_BAD_REQUEST, detail="Request belongs to another business"
            )

    invoices = InvoiceRepo(session)
    number = f"INV-{utcnow():%Y%m%d%H%M%S}-{await invoices.count_for_business(business.id) + 1}"
    invoice = await invoices.create(
        business_id=business.id,
        number=number,
        client_name=client_name,
        client_email=(body.client_email or "").strip() or None,
        client_phone=(body.client_phone or "").strip() or None,
        amount=body.amount,
        currency=(body.currency or "").strip().upper() or DEFAULT_CURRENCY,
        due_date=body.due_date,
        request_id=body.request_id,
    )
    await session.commit()
    log.info("invoice_created", business_id=str(business.id), number=number)
    return InvoiceOut.model_validate(invoice)


# --- Module Notes -----------------------------------------------------------
# Invoice numbers are unique per business (`uq_invoices_business_number`); two invoices
# of one business created concurrently can collide and surface as 409.
