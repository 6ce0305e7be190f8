"""
bizdir.api.schemas

Response models shared by several routers.

Responsibilities:
- Map ORM entities to API payloads (`from_attributes`), with enums as their string
  values and Numeric prices/amounts as floats.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from bizdir.db.models import (
    BillingStatus,
    CategoryType,
    InvoiceStatus,
    LifecycleStatus,
    PlaybookConfidence,
    PlaybookScope,
    RequestStatus,
    UserRole,
)


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(OrmModel):
    id: uuid.UUID
    email: str
    name: str | None
    role: UserRole


class BusinessOut(OrmModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    slug: str
    city: str | None
    category: str | None
    description: str | None
    logo_url: str | None
    lifecycle_status: LifecycleStatus
    billing_status: BillingStatus
    created_at: datetime


class PublicBusinessOut(OrmModel):
    id: uuid.UUID
    name: str
    slug: str
    city: str | None
    category: str | None
    description: str | None
    logo_url: str | None


class ProfileOut(OrmModel):
    business_id: uuid.UUID
    resident_number: str
    display_name: str | None
    avatar_url: str | None
    phone: str | None
    telegram_username: str | None
    stats_cases: int
    stats_projects: int
    stats_cities: int
    cities: list[str]
    services: list[str]


class PhotoOut(OrmModel):
    id: uuid.UUID
    url: str
    sort_order: int


class PortfolioItemOut(OrmModel):
    id: uuid.UUID
    comment: str | None
    cover_url: str | None
    sort_order: int
    photos: list[PhotoOut]


class CategoryOut(OrmModel):
    id: uuid.UUID
    type: CategoryType
    name: str
    sort_order: int


class RequestOut(OrmModel):
    id: uuid.UUID
    business_id: uuid.UUID
    title: str
    description: str | None
    client_name: str | None
    client_email: str | None
    client_phone: str | None
    source: str
    status: RequestStatus
    created_at: datetime


class InvoiceOut(OrmModel):
    id: uuid.UUID
    business_id: uuid.UUID
    request_id: uuid.UUID | None
    number: str
    client_name: str
    client_email: str | None
    client_phone: str | None
    amount: float
    currency: str
    status: InvoiceStatus
    due_date: datetime | None
    created_at: datetime


class PlaybookItemOut(OrmModel):
    id: uuid.UUID
    scope: PlaybookScope
    business_id: uuid.UUID | None
    title: str
    move: str
    context: str | None
    outcome: str | None
    confidence: PlaybookConfidence
    tags: list[str]
    created_at: datetime


class OkResponse(BaseModel):
    ok: bool = True
