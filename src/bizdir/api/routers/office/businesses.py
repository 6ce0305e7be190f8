"""
bizdir.api.routers.office.businesses

Office endpoints for a resident's businesses: listing, showcase profile and requisites.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_400_BAD_REQUEST

from bizdir.api.deps import db_session, settings_dep
from bizdir.api.schemas import BusinessOut, ProfileOut
from bizdir.api.tenancy import office_principal, owned_business
from bizdir.auth.models import Principal
from bizdir.db.models import Business
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.profiles import ProfileRepo
from bizdir.observability.logging import get_logger
from bizdir.services.slugs import is_latin_only
from bizdir.settings import Settings

log = get_logger(__name__)

router = APIRouter()

REQUISITE_FIELDS = (
    "legal_name",
    "address",
    "ogrn",
    "inn",
    "bank_account",
    "bank",
    "bank_corr_account",
    "bik",
    "requisites_phone",
    "requisites_email",
    "director",
)
REQUISITE_MAX_LENGTH = 500


class ProfileUpdate(BaseModel):
    display_name: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    telegram_username: str | None = None
    stats_cases: int | None = Field(default=None, ge=0)
    stats_projects: int | None = Field(default=None, ge=0)
    stats_cities: int | None = Field(default=None, ge=0)
    cities: list[str] | None = None
    services: list[str] | None = None
    featured_services: list[str] | None = None


class RequisitesUpdate(BaseModel):
    legal_name: str | None = None
    address: str | None = None
    ogrn: str | None = None
    inn: str | None = None
    bank_account: str | None = None
    bank: str | None = None
    bank_corr_account: str | None = None
    bik: str | None = None
    requisites_phone: str | None = None
    requisites_email: str | None = None
    director: str | None = None


@router.get("/businesses", response_model=list[BusinessOut])
async def list_my_businesses(
    principal: Principal = Depends(office_principal),
    session: AsyncSession = Depends(db_session),
) -> list[BusinessOut]:
    owner_id = None if principal.is_admin else principal.user_id
    return [BusinessOut.model_validate(b) for b in await BusinessRepo(session).list_for_owner(owner_id)]


@router.get("/businesses/{business_id}/profile", response_model=ProfileOut)
async def get_profile(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> ProfileOut:
    profile = await ProfileRepo(session).get_or_create(business.id)
    await session.commit()
    return ProfileOut.model_validate(profile)


@router.put("/businesses/{business_id}/profile", response_model=ProfileOut)
async def update_profile(
    body: ProfileUpdate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> ProfileOut:
    provided = body.model_fields_set
    if body.display_name and not is_latin_only(body.display_name):
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST, detail="INVALID_DISPLAY_NAME_LATIN_ONLY"
        )

    profile = await ProfileRepo(session).get_or_create(business.id)

    # Empty strings clear nullable fields; omitted keys stay untouched.
    for name in ("display_name", "avatar_url", "phone", "telegram_username"):
        if name in provided:
            setattr(profile, name, getattr(body, name) or None)
    for name in ("stats_cases", "stats_projects", "stats_cities"):
        value = getattr(body, name)
        if name in provided and value is not None:
            setattr(profile, name, value)
    if "cities" in provided and body.cities is not None:
        profile.cities = list(body.cities)

    if "featured_services" in provided and body.featured_services is not None:
        featured = [s for s in body.featured_services if s and s.strip()]
        profile.services = featured[: settings.max_featured_services]
    elif "services" in provided and body.services is not None:
        profile.services = list(body.services)

    await session.flush()
    await session.commit()
    log.info("profile_updated", business_id=str(business.id))
    return ProfileOut.model_validate(profile)


def _requisites(business: Business) -> dict[str, Any]:
    return {name: getattr(business, name) for name in REQUISITE_FIELDS}


@router.get("/businesses/{business_id}/requisites")
async def get_requisites(business: Business = Depends(owned_business)) -> dict[str, Any]:
    return {"business_id": str(business.id), "name": business.name, **_requisites(business)}


@router.put("/businesses/{business_id}/requisites")
async def update_requisites(
    body: RequisitesUpdate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    for name in body.model_fields_set & set(REQUISITE_FIELDS):
        value = (getattr(body, name) or "").strip()[:REQUISITE_MAX_LENGTH]
        setattr(business, name, value or None)
    await session.commit()
    log.info("requisites_updated", business_id=str(business.id))
    return {"business_id": str(business.id), "name": business.name, **_requisites(business)}
