"""Translate domain and storage errors into HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from coworkly.domain.errors import (
    ConflictError,
    DuplicatePaymentError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    StorageError,
    ValidationError,
)
from coworkly.observability.logging import get_logger

logger = get_logger(__name__)

# Most specific first.
_STATUS_BY_ERROR: list[tuple[type[SchedulingError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (DuplicatePaymentError, 409),
    (InvalidStateError, 400),
]


def status_for(exc: SchedulingError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def _scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content=exc.to_dict())


async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(
        "request_storage_error",
        extra={"extra_fields": {"path": request.url.path, "method": request.method}},
    )
    return JSONResponse(status_code=503, content=exc.to_dict())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, _scheduling_error_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
