"""
bizdir.api.tenancy

Tenant ownership dependencies for office endpoints.

Responsibilities:
- Load the business addressed by the `business_id` path parameter.
- Enforce that the caller owns it (admins manage every business).
"""

from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_403_FORBIDDEN, HTTP_404_NOT_FOUND

from bizdir.api.deps import db_session
from bizdir.auth.deps import require_roles
from bizdir.auth.models import Principal
from bizdir.db.models import Business, UserRole
from bizdir.db.repositories.businesses import BusinessRepo

office_principal = require_roles(UserRole.business_owner.value)


def ensure_can_manage(business: Business | None, principal: Principal) -> Business:
    if business is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Business not found")
    if not principal.can_manage(business.owner_id):
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Forbidden")
    return business


async def owned_business(
    business_id: uuid.UUID,
    principal: Principal = Depends(office_principal),
    session: AsyncSession = Depends(db_session),
) -> Business:
    business = await BusinessRepo(session).get(business_id)
    return ensure_can_manage(business, principal)
