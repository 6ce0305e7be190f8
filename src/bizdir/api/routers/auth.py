"""
bizdir.api.routers.auth

Account endpoints: registration, login, token refresh and resident onboarding.

Responsibilities:
- Create BUSINESS_OWNER accounts and issue bearer tokens.
- Onboard a resident in one step (user + DRAFT business).
- Re-issue tokens from current DB state.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from bizdir.api.deps import db_session, settings_dep
from bizdir.api.schemas import BusinessOut, UserOut
from bizdir.auth.deps import get_principal
from bizdir.auth.jwt import JwtConfig, issue_token
from bizdir.auth.models import Principal
from bizdir.auth.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from bizdir.db.models import User, UserRole
from bizdir.db.repositories.businesses import BusinessRepo
from bizdir.db.repositories.users import UserRepo
from bizdir.observability.logging import get_logger
from bizdir.services.slugs import is_latin_only
from bizdir.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])
resident_router = APIRouter(prefix="/v1/resident", tags=["auth"])


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ResidentSignupRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = None
    city: str | None = None
    category: str | None = None


class TokenResponse(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
    business_id: uuid.UUID | None = None


def issue_for(user: User, settings: Settings, business_id: uuid.UUID | None) -> str:
    return issue_token(
        cfg=JwtConfig.from_settings(settings),
        subject=str(user.id),
        roles=[user.role.value],
        email=user.email,
        business_id=business_id,
    )


@router.post("/register", response_model=TokenResponse, status_code=HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    if not body.email or not body.password:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Email and password are required")

    users = UserRepo(session)
    if await users.get_by_email(body.email) is not None:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail="User already exists")

    user = await users.create(
        email=body.email,
        password_hash=hash_password(body.password),
        role=UserRole.business_owner,
        name=body.name,
    )
    await session.commit()
    log.info("user_registered", user_id=str(user.id))
    return TokenResponse(
        user=UserOut.model_validate(user), access_token=issue_for(user, settings, None)
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    if not body.email or not body.password:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Email and password are required")

    users = UserRepo(session)
    user = await users.get_by_email(body.email)
    # Same message for unknown email and wrong password.
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    business_id = user.businesses[0].id if user.businesses else None
    log.info("user_logged_in", user_id=str(user.id))
    return TokenResponse(
        user=UserOut.model_validate(user),
        access_token=issue_for(user, settings, business_id),
        business_id=business_id,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> TokenResponse:
    user = await UserRepo(session).get_with_businesses(principal.user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    business_id = user.businesses[0].id if user.businesses else None
    return TokenResponse(
        user=UserOut.model_validate(user),
        access_token=issue_for(user, settings, business_id),
        business_id=business_id,
    )


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    user = await UserRepo(session).get_with_businesses(principal.user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="User not found")
    return {
        "user": UserOut.model_validate(user).model_dump(mode="json"),
        "business_ids": [str(b.id) for b in user.businesses],
    }


@resident_router.post("/signup", status_code=HTTP_201_CREATED)
async def resident_signup(
    body: ResidentSignupRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    if not body.email or not body.password or not body.name:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="EMAIL_PASSWORD_NAME_REQUIRED")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="PASSWORD_TOO_SHORT")
    if not is_latin_only(body.name):
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="INVALID_NAME_LATIN_ONLY")

    users = UserRepo(session)
    if await users.get_by_email(body.email) is not None:
        raise HTTPException(status_code=HTTP_409_CONFLICT, detail="USER_ALREADY_EXISTS")

    user = await users.create(
        email=body.email, password_hash=hash_password(body.password), role=UserRole.business_owner
    )
    business = await BusinessRepo(session).create(
        owner_id=user.id, name=body.name, city=body.city or None, category=body.category or None
    )
    await session.commit()
    log.info("resident_signed_up", user_id=str(user.id), business_id=str(business.id))

    return {
        "user": UserOut.model_validate(user).model_dump(mode="json"),
        "business": BusinessOut.model_validate(business).model_dump(mode="json"),
        "access_token": issue_for(user, settings, business.id),
        "token_type": "bearer",
    }
