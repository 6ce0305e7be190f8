"""
bizdir.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce role checks via reusable dependency factories.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from bizdir.api.deps import settings_dep
from bizdir.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from bizdir.auth.models import Principal
from bizdir.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def _principal_from_token(token: str, settings: Settings) -> Principal:
    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=token)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    roles_raw = payload.get("roles", [])
    if not isinstance(roles_raw, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")
    try:
        user_id = uuid.UUID(str(payload["sub"]))
        business_raw = payload.get("business_id")
        business_id = uuid.UUID(business_raw) if business_raw else None
    except ValueError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from e

    return Principal(
        user_id=user_id,
        email=str(payload.get("email", "")),
        roles=frozenset(str(r) for r in roles_raw),
        business_id=business_id,
    )


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    principal = _principal_from_token(creds.credentials, settings)
    structlog.contextvars.bind_contextvars(user_id=principal.subject)
    return principal


def get_optional_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal | None:
    # Public endpoints accept anonymous callers but still reject a forged token.
    if creds is None or not creds.credentials:
        return None
    return _principal_from_token(creds.credentials, settings)


def require_roles(*allowed: str):
    allowed_set = frozenset(allowed)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Admin bypasses role checks; everyone else needs one of the allowed roles.
        if principal.is_admin:
            return principal
        if not allowed_set & principal.roles:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Forbidden")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Tenant ownership (resident vs. business) is checked in `api.tenancy.owned_business`,
# which needs a DB session; role checks here are stateless.
