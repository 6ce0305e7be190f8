"""
bizdir.observability.middleware

Request-scoped logging context for the HTTP API.

Responsibilities:
- Accept or mint an `x-request-id` and echo it on the response.
- Bind request id, method, path and (for office routes) the tenant business id.
- Write one access line per request; 5xx responses are logged at warning level.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bizdir.observability.logging import get_logger

log = get_logger("bizdir.access")

REQUEST_ID_HEADER = "x-request-id"

_OFFICE_BUSINESS_PATH = re.compile(r"^/v1/office/businesses/(?P<business_id>[0-9a-fA-F-]{36})(?:/|$)")


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=path)
        tenant = _OFFICE_BUSINESS_PATH.match(path)
        if tenant:
            structlog.contextvars.bind_contextvars(business_id=tenant.group("business_id"))

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            emit = log.warning if response.status_code >= 500 else log.info
            emit("request_completed", status_code=response.status_code, duration_ms=elapsed_ms)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
