"""
Map the reservation error taxonomy onto HTTP responses
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from roomledger.errors import (
    ConcurrencyError, ConflictError, ExhaustedError, NotFoundError,
    ReservationError, ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = (
    (ValidationError, 422),
    (ConflictError, 409),
    (NotFoundError, 404),
    (ConcurrencyError, 503),
    (ExhaustedError, 500),
)


def status_for(exc: ReservationError) -> int:
    for category, status_code in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status_code
    return 400


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
        headers = {"Retry-After": "1"} if isinstance(exc, ConcurrencyError) else None
        return JSONResponse(content={"detail": exc.to_dict()}, status_code=status_code, headers=headers)
