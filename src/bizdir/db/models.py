"""
bizdir.db.models

Core persistence schema for the business directory.

Responsibilities:
- Define ORM models for tenants and their showcase:
  - User, Business, BusinessProfile, BusinessPhoto, PortfolioItem/PortfolioPhoto
- Define ORM models for partner trade:
  - PriceList/PriceListRow, PriceAssignment, IncomingRequest/IncomingRequestItem
- Define ORM models for customer inquiries and fulfilment:
  - Request, PickerInvite, RequestAssignment, Invoice
- Define ORM models for the AI agent and audit trail:
  - AgentConversation/AgentMessage, AgentPlaybookItem, AuditLog
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.db.base import Base, TimestampMixin, UuidPkMixin, utcnow


class UserRole(enum.StrEnum):
    business_owner = "BUSINESS_OWNER"
    admin = "ADMIN"
    receiver = "RECEIVER"


class LifecycleStatus(enum.StrEnum):
    draft = "DRAFT"
    active = "ACTIVE"
    suspended = "SUSPENDED"


class BillingStatus(enum.StrEnum):
    unpaid = "UNPAID"
    paid = "PAID"


class CategoryType(enum.StrEnum):
    price = "PRICE"
    business = "BUSINESS"


class PriceListKind(enum.StrEnum):
    base = "BASE"
    derived = "DERIVED"


class ModifierType(enum.StrEnum):
    markup = "MARKUP"
    discount = "DISCOUNT"


class PartnerLinkStatus(enum.StrEnum):
    # PENDING until the counterparty accepts (ACTIVE) or declines (DECLINED).
    pending = "PENDING"
    active = "ACTIVE"
    declined = "DECLINED"


class RequestStatus(enum.StrEnum):
    new = "NEW"
    in_progress = "IN_PROGRESS"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class AssignmentRole(enum.StrEnum):
    picker = "PICKER"


class InvoiceStatus(enum.StrEnum):
    draft = "DRAFT"
    sent = "SENT"
    paid = "PAID"
    cancelled = "CANCELLED"


class ConversationScope(enum.StrEnum):
    platform = "PLATFORM"
    business = "BUSINESS"
    public = "PUBLIC"


class ConversationMode(enum.StrEnum):
    creator = "CREATOR"
    resident = "RESIDENT"
    client = "CLIENT"


class MessageRole(enum.StrEnum):
    user = "USER"
    assistant = "ASSISTANT"
    system = "SYSTEM"


class PlaybookScope(enum.StrEnum):
    platform = "PLATFORM"
    business = "BUSINESS"


class PlaybookConfidence(enum.StrEnum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"


def _fk(target: str, *, ondelete: str = "CASCADE", nullable: bool = False, index: bool = True):
    return mapped_column(
        SAUuid(as_uuid=True), ForeignKey(target, ondelete=ondelete), nullable=nullable, index=index
    )


# --- Tenants ------------------------------------------------------------------


class User(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False, index=True)

    businesses: Mapped[list[Business]] = relationship(
        back_populates="owner", order_by="Business.created_at"
    )


class Business(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "businesses"

    owner_id: Mapped[uuid.UUID] = _fk("users.id")
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    lifecycle_status: Mapped[LifecycleStatus] = mapped_column(
        Enum(LifecycleStatus), nullable=False, default=LifecycleStatus.draft, index=True
    )
    billing_status: Mapped[BillingStatus] = mapped_column(
        Enum(BillingStatus), nullable=False, default=BillingStatus.unpaid
    )

    # Requisites (legal details printed on partner documents).
    legal_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ogrn: Mapped[str | None] = mapped_column(String(500), nullable=True)
    inn: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bank_account: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bank: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bank_corr_account: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bik: Mapped[str | None] = mapped_column(String(500), nullable=True)
    requisites_phone: Mapped[str | None] = mapped_column(String(500), nullable=True)
    requisites_email: Mapped[str | None] = mapped_column(String(500), nullable=True)
    director: Mapped[str | None] = mapped_column(String(500), nullable=True)

    owner: Mapped[User] = relationship(back_populates="businesses")
    profile: Mapped[BusinessProfile | None] = relationship(
        back_populates="business", cascade="all, delete-orphan", uselist=False
    )
    photos: Mapped[list[BusinessPhoto]] = relationship(
        cascade="all, delete-orphan", order_by="BusinessPhoto.sort_order"
    )
    portfolio_items: Mapped[list[PortfolioItem]] = relationship(
        cascade="all, delete-orphan", order_by="PortfolioItem.sort_order"
    )
    price_lists: Mapped[list[PriceList]] = relationship(
        back_populates="business", cascade="all, delete-orphan"
    )

    @property
    def display_legal_name(self) -> str:
        # Partner tables show the legal name when filled in, otherwise the brand name.
        return (self.legal_name or "").strip() or self.name


class BusinessProfile(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "business_profiles"

    business_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("businesses.id", ondelete="CASCADE"), unique=True
    )
    resident_number: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    telegram_username: Mapped[str | None] = mapped_column(String(128), nullable=True)
    stats_cases: Mapped[int] = mapped_column(nullable=False, default=40)
    stats_projects: Mapped[int] = mapped_column(nullable=False, default=2578)
    stats_cities: Mapped[int] = mapped_column(nullable=False, default=4)
    cities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    services: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    business: Mapped[Business] = relationship(back_populates="profile")


class BusinessPhoto(UuidPkMixin, Base):
    __tablename__ = "business_photos"

    business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class PortfolioItem(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "portfolio_items"

    business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)

    photos: Mapped[list[PortfolioPhoto]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PortfolioPhoto.sort_order",
    )


class PortfolioPhoto(UuidPkMixin, Base):
    __tablename__ = "portfolio_photos"

    item_id: Mapped[uuid.UUID] = _fk("portfolio_items.id")
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    item: Mapped[PortfolioItem] = relationship(back_populates="photos")


class Category(UuidPkMixin, Base):
    __tablename__ = "categories"

    type: Mapped[CategoryType] = mapped_column(Enum(CategoryType), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)

    __table_args__ = (UniqueConstraint("type", "name", name="uq_categories_type_name"),)


# --- Partner trade --------------------------------------------------------------


class PriceList(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "price_lists"

    business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    kind: Mapped[PriceListKind] = mapped_column(
        Enum(PriceListKind), nullable=False, default=PriceListKind.base
    )
    category: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    derived_from_id: Mapped[uuid.UUID | None] = _fk(
        "price_lists.id", ondelete="SET NULL", nullable=True, index=False
    )
    modifier_type: Mapped[ModifierType | None] = mapped_column(Enum(ModifierType), nullable=True)
    percent: Mapped[Decimal | None] = mapped_column(Numeric(7, 2), nullable=True)
    columns: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)

    business: Mapped[Business] = relationship(back_populates="price_lists")
    rows: Mapped[list[PriceListRow]] = relationship(
        back_populates="price_list",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PriceListRow.order",
    )
    assignments: Mapped[list[PriceAssignment]] = relationship(
        back_populates="price_list", cascade="all, delete-orphan", passive_deletes=True
    )


class PriceListRow(UuidPkMixin, Base):
    __tablename__ = "price_list_rows"

    price_list_id: Mapped[uuid.UUID] = _fk("price_lists.id")
    order: Mapped[int] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    unit: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price_with_vat: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    price_without_vat: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    extra: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    price_list: Mapped[PriceList] = relationship(back_populates="rows")

    @property
    def effective_price(self) -> Decimal | None:
        return self.price_with_vat if self.price_with_vat is not None else self.price_without_vat


class PriceAssignment(UuidPkMixin, Base):
    __tablename__ = "price_assignments"

    price_list_id: Mapped[uuid.UUID] = _fk("price_lists.id")
    counterparty_business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    status: Mapped[PartnerLinkStatus] = mapped_column(
        Enum(PartnerLinkStatus), nullable=False, default=PartnerLinkStatus.pending, index=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    responded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    price_list: Mapped[PriceList] = relationship(back_populates="assignments")
    counterparty_business: Mapped[Business] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "price_list_id", "counterparty_business_id", name="uq_price_assignment_pair"
        ),
    )


class IncomingRequest(UuidPkMixin, Base):
    __tablename__ = "incoming_requests"

    sender_business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    recipient_business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    category: Mapped[str | None] = mapped_column(String(256), nullable=True)
    total: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus), nullable=False, default=RequestStatus.new
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)

    sender: Mapped[Business] = relationship(foreign_keys=[sender_business_id])
    items: Mapped[list[IncomingRequestItem]] = relationship(
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="IncomingRequestItem.sort_order",
    )


class IncomingRequestItem(UuidPkMixin, Base):
    __tablename__ = "incoming_request_items"

    request_id: Mapped[uuid.UUID] = _fk("incoming_requests.id")
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    quantity: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    unit: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    sum: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)


# --- Customer inquiries and fulfilment ------------------------------------------


class Request(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "requests"

    business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    client_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    client_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False, default="ai_chat")
    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus), nullable=False, default=RequestStatus.new, index=True
    )

    business: Mapped[Business] = relationship()

    __table_args__ = (Index("ix_requests_business_created", "business_id", "created_at"),)


class PickerInvite(UuidPkMixin, Base):
    __tablename__ = "picker_invites"

    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(128), nullable=False)
    request_id: Mapped[uuid.UUID] = _fk("requests.id")
    created_by_user_id: Mapped[uuid.UUID | None] = _fk(
        "users.id", ondelete="SET NULL", nullable=True, index=False
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    used_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)


class RequestAssignment(UuidPkMixin, Base):
    __tablename__ = "request_assignments"

    request_id: Mapped[uuid.UUID] = _fk("requests.id")
    role: Mapped[AssignmentRole] = mapped_column(Enum(AssignmentRole), nullable=False)
    created_by_user_id: Mapped[uuid.UUID | None] = _fk(
        "users.id", ondelete="SET NULL", nullable=True, index=False
    )
    invite_id: Mapped[uuid.UUID | None] = _fk(
        "picker_invites.id", ondelete="SET NULL", nullable=True, index=False
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    request: Mapped[Request] = relationship()
    invite: Mapped[PickerInvite | None] = relationship()

    __table_args__ = (UniqueConstraint("request_id", "role", name="uq_request_assignment_role"),)


class Invoice(UuidPkMixin, Base):
    __tablename__ = "invoices"

    business_id: Mapped[uuid.UUID] = _fk("businesses.id")
    request_id: Mapped[uuid.UUID | None] = _fk(
        "requests.id", ondelete="SET NULL", nullable=True, index=False
    )
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    client_name: Mapped[str] = mapped_column(String(256), nullable=False)
    client_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    client_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="RUB")
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.draft
    )
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)

    # Numbers are sequential per business; tenants never share a namespace.
    __table_args__ = (
        UniqueConstraint("business_id", "number", name="uq_invoices_business_number"),
    )


# --- AI agent and audit ---------------------------------------------------------


class AgentConversation(UuidPkMixin, TimestampMixin, Base):
    __tablename__ = "agent_conversations"

    user_id: Mapped[uuid.UUID] = _fk("users.id")
    scope: Mapped[ConversationScope] = mapped_column(Enum(ConversationScope), nullable=False)
    mode: Mapped[ConversationMode] = mapped_column(Enum(ConversationMode), nullable=False)
    business_id: Mapped[uuid.UUID | None] = _fk(
        "businesses.id", ondelete="SET NULL", nullable=True
    )
    title: Mapped[str | None] = mapped_column(String(256), nullable=True)

    messages: Mapped[list[AgentMessage]] = relationship(
        back_populates="conversation", cascade="all, delete-orphan", passive_deletes=True
    )


class AgentMessage(UuidPkMixin, Base):
    __tablename__ = "agent_messages"

    conversation_id: Mapped[uuid.UUID] = _fk("agent_conversations.id")
    role: Mapped[MessageRole] = mapped_column(Enum(MessageRole), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    conversation: Mapped[AgentConversation] = relationship(back_populates="messages")

    __table_args__ = (Index("ix_agent_messages_conv_created", "conversation_id", "created_at"),)


class AgentPlaybookItem(UuidPkMixin, Base):
    """
    A curated move the agents can learn from: what was tried, in which context, and
    how it turned out.
    """

    __tablename__ = "agent_playbook_items"

    scope: Mapped[PlaybookScope] = mapped_column(Enum(PlaybookScope), nullable=False, index=True)
    business_id: Mapped[uuid.UUID | None] = _fk("businesses.id", nullable=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    move: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    confidence: Mapped[PlaybookConfidence] = mapped_column(Enum(PlaybookConfidence), nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)


class AuditLog(UuidPkMixin, Base):
    __tablename__ = "audit_logs"

    user_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)


# --- Module Notes -----------------------------------------------------------
# Enum values are persisted and exposed over the API; treat them as a stable contract.
# Prices are Numeric; the API layer converts them to floats when serializing.
