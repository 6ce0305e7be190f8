"""
bizdir.api.errors

Exception handlers that keep error bodies in the `{"detail": ...}` shape.

Responsibilities:
- Report malformed request bodies/params as 400.
- Reject prices that do not fit the price columns with 400.
- Turn unique-constraint violations that slipped past explicit checks into 409.
- Log unexpected failures and answer with a generic 500.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from bizdir.observability.logging import get_logger
from bizdir.services.pricing import PriceValueError

log = get_logger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in err.get("loc", ())),
            "message": err.get("msg", "Validation error"),
        }
        for err in exc.errors()
    ]
    log.info("request_validation_failed", error_count=len(errors))
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request", "errors": errors},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.warning("integrity_conflict", error=str(exc.orig))
    return JSONResponse(status_code=HTTP_409_CONFLICT, content={"detail": "Conflict"})


async def price_value_error_handler(request: Request, exc: PriceValueError) -> JSONResponse:
    log.info("price_value_rejected", error=str(exc))
    return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Full traceback goes to the log; clients only see a generic message.
    log.exception("unhandled_exception", exception_type=type(exc).__name__)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PriceValueError, price_value_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
