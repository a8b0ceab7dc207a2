"""Maps core error codes onto HTTP statuses and registers the exception handlers."""

from __future__ import annotations

import logging
from typing import Iterable, List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas import ErrorDetail, ErrorEnvelope
from models.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

# Codes missing from this map are client errors.
ERROR_STATUS = {
    ErrorCode.EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.BAD_REQ: status.HTTP_400_BAD_REQUEST,
    ErrorCode.DB: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class SensorsApiError(Exception):
    """Raised by route handlers when the core returns an error result."""

    def __init__(self, errors: Iterable[AppError]):
        self.errors: List[AppError] = list(errors)
        super().__init__("; ".join(error.message for error in self.errors))

    @classmethod
    def single(cls, message: str, code: ErrorCode, field: str | None = None):
        return cls([AppError(code=code, message=message, field=field)])


def http_status(errors: Iterable[AppError]) -> int:
    """Status of the first mapped code; a server error outranks everything."""
    result = 0
    for error in errors:
        error_status = ERROR_STATUS.get(error.code)
        if error_status is None:
            continue
        if result == 0:
            result = error_status
        if error_status == status.HTTP_500_INTERNAL_SERVER_ERROR:
            result = error_status
    return result or status.HTTP_400_BAD_REQUEST


def error_envelope(errors: List[AppError]) -> ErrorEnvelope:
    return ErrorEnvelope(
        status=http_status(errors),
        errors=[ErrorDetail(**error.as_dict()) for error in errors],
    )


def _error_response(errors: List[AppError]) -> JSONResponse:
    envelope = error_envelope(errors)
    return JSONResponse(status_code=envelope.status, content=envelope.to_json())


async def sensors_api_error_handler(request: Request, exc: SensorsApiError):
    """Handle error results surfaced by the core."""
    response = _error_response(exc.errors)
    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_code": [e.code for e in exc.errors]},
        )
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle unknown routes and unsupported methods."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        code = ErrorCode.NOT_FOUND
        message = f"{request.method} not supported for {request.url.path}"
    elif exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        code = ErrorCode.INTERNAL
        message = str(exc.detail)
    else:
        code = ErrorCode.BAD_REQ
        message = str(exc.detail)
    envelope = ErrorEnvelope(
        status=exc.status_code,
        errors=[ErrorDetail(code=code.value, message=message)],
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.to_json(),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    """Turn anything unexpected into an INTERNAL error envelope."""
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return _error_response(
        [AppError(code=ErrorCode.INTERNAL, message=str(exc) or exc.__class__.__name__)]
    )


def register_error_handlers(app: FastAPI) -> None:
    """Route every error through the sensors error envelope."""
    app.add_exception_handler(SensorsApiError, sensors_api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
