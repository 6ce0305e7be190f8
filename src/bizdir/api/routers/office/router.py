"""
bizdir.api.routers.office.router

Office router aggregator.

Responsibilities:
- Mount per-area office routers under `/v1/office`.
- Keep the resident back office behind the BUSINESS_OWNER role (admins pass too).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bizdir.api.routers.office import businesses, media, partnership, prices, requests
from bizdir.api.tenancy import office_principal

router = APIRouter(prefix="/v1/office", tags=["office"], dependencies=[Depends(office_principal)])

router.include_router(businesses.router)
router.include_router(media.router)
router.include_router(prices.router)
router.include_router(partnership.router)
router.include_router(requests.router)
router.include_router(requests.request_router)


# --- Module Notes -----------------------------------------------------------
# Per-business routes resolve `{business_id}` through `api.tenancy.owned_business`.
