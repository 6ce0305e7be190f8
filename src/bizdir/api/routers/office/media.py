"""
bizdir.api.routers.office.media

Showcase media management: business photos and portfolio items.

Responsibilities:
- Register already-hosted image URLs as business photos (bounded per business).
- Create/edit/delete portfolio items and their photos (bounded per item).
- Keep an item's cover consistent with its photos.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
)

from bizdir.api.deps import db_session, settings_dep
from bizdir.api.schemas import OkResponse, PhotoOut, PortfolioItemOut
from bizdir.api.tenancy import owned_business
from bizdir.db.models import Business, PortfolioItem
from bizdir.db.repositories.showcase import ShowcaseRepo
from bizdir.observability.logging import get_logger
from bizdir.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/businesses/{business_id}")


class PhotoCreate(BaseModel):
    url: str = Field(min_length=1, max_length=1024)


class PortfolioItemCreate(BaseModel):
    comment: str | None = None
    urls: list[str] = Field(default_factory=list)


class PortfolioItemPatch(BaseModel):
    comment: str | None = None
    cover_photo_id: uuid.UUID | None = None


class PortfolioPhotosAdd(BaseModel):
    urls: list[str] = Field(default_factory=list)


# --- Business photos -------------------------------------------------------------


@router.get("/photos", response_model=list[PhotoOut])
async def list_photos(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> list[PhotoOut]:
    return [PhotoOut.model_validate(p) for p in await ShowcaseRepo(session).list_photos(business.id)]


@router.post("/photos", response_model=PhotoOut, status_code=HTTP_201_CREATED)
async def add_photo(
    body: PhotoCreate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> PhotoOut:
    repo = ShowcaseRepo(session)
    if await repo.count_photos(business.id) >= settings.max_business_photos:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.max_business_photos} photos per business",
        )
    photo = await repo.add_photo(business_id=business.id, url=body.url.strip())
    await session.commit()
    return PhotoOut.model_validate(photo)


@router.delete("/photos/{photo_id}", response_model=OkResponse)
async def delete_photo(
    photo_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> OkResponse:
    repo = ShowcaseRepo(session)
    photo = await repo.get_photo(photo_id)
    if photo is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Photo not found")
    if photo.business_id != business.id:
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Photo does not belong to this business")
    await repo.delete(photo)
    await session.commit()
    return OkResponse()


# --- Portfolio -------------------------------------------------------------------


async def _item_of(business: Business, item_id: uuid.UUID, repo: ShowcaseRepo) -> PortfolioItem:
    item = await repo.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Portfolio item not found")
    if item.business_id != business.id:
        raise HTTPException(
            status_code=HTTP_403_FORBIDDEN, detail="Portfolio item does not belong to this business"
        )
    return item


def _check_photo_limit(item: PortfolioItem, adding: int, limit: int) -> None:
    if len(item.photos) + adding > limit:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail=f"At most {limit} photos per portfolio item. Already added: {len(item.photos)}",
        )


def _clean_urls(urls: list[str]) -> list[str]:
    return [u.strip() for u in urls if u and u.strip()]


@router.get("/portfolio-items", response_model=list[PortfolioItemOut])
async def list_portfolio_items(
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> list[PortfolioItemOut]:
    items = await ShowcaseRepo(session).list_items(business.id)
    return [PortfolioItemOut.model_validate(i) for i in items]


@router.post("/portfolio-items", response_model=PortfolioItemOut, status_code=HTTP_201_CREATED)
async def create_portfolio_item(
    body: PortfolioItemCreate,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> PortfolioItemOut:
    repo = ShowcaseRepo(session)
    urls = _clean_urls(body.urls)
    if len(urls) > settings.max_portfolio_photos:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.max_portfolio_photos} photos per portfolio item",
        )
    item = await repo.create_item(business_id=business.id, comment=body.comment or None)
    if urls:
        await repo.add_item_photos(item, urls)
    await session.commit()
    log.info("portfolio_item_created", business_id=str(business.id), item_id=str(item.id))
    return PortfolioItemOut.model_validate(item)


@router.patch("/portfolio-items/{item_id}", response_model=PortfolioItemOut)
async def update_portfolio_item(
    item_id: uuid.UUID,
    body: PortfolioItemPatch,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> PortfolioItemOut:
    item = await _item_of(business, item_id, ShowcaseRepo(session))
    provided = body.model_fields_set

    if "comment" in provided:
        item.comment = body.comment or None
    if "cover_photo_id" in provided:
        if body.cover_photo_id is None:
            item.cover_url = None
        else:
            cover = next((p for p in item.photos if p.id == body.cover_photo_id), None)
            if cover is None:
                raise HTTPException(
                    status_code=HTTP_404_NOT_FOUND,
                    detail="Photo not found or does not belong to this item",
                )
            item.cover_url = cover.url

    await session.commit()
    return PortfolioItemOut.model_validate(item)


@router.delete("/portfolio-items/{item_id}", response_model=OkResponse)
async def delete_portfolio_item(
    item_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> OkResponse:
    repo = ShowcaseRepo(session)
    item = await _item_of(business, item_id, repo)
    await repo.delete(item)
    await session.commit()
    log.info("portfolio_item_deleted", business_id=str(business.id), item_id=str(item_id))
    return OkResponse()


@router.post(
    "/portfolio-items/{item_id}/photos",
    response_model=list[PhotoOut],
    status_code=HTTP_201_CREATED,
)
async def add_portfolio_photos(
    item_id: uuid.UUID,
    body: PortfolioPhotosAdd,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> list[PhotoOut]:
    repo = ShowcaseRepo(session)
    item = await _item_of(business, item_id, repo)
    urls = _clean_urls(body.urls)
    if not urls:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="urls are required")
    _check_photo_limit(item, len(urls), settings.max_portfolio_photos)
    added = await repo.add_item_photos(item, urls)
    await session.commit()
    return [PhotoOut.model_validate(p) for p in added]


@router.delete("/portfolio-items/{item_id}/photos/{photo_id}", response_model=OkResponse)
async def delete_portfolio_photo(
    item_id: uuid.UUID,
    photo_id: uuid.UUID,
    business: Business = Depends(owned_business),
    session: AsyncSession = Depends(db_session),
) -> OkResponse:
    repo = ShowcaseRepo(session)
    item = await _item_of(business, item_id, repo)
    photo = next((p for p in item.photos if p.id == photo_id), None)
    if photo is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Photo not found")

    if item.cover_url == photo.url:
        item.cover_url = None
    item.photos.remove(photo)
    await session.flush()
    await session.commit()
    return OkResponse()
