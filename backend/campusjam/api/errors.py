"""Domain error mapping and global handlers that attach request_id to every error body."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Tuple, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campusjam.api.request_id import get_request_id
from campusjam.domain.common.errors import (
    Conflict,
    DomainError,
    Forbidden,
    Internal,
    InvalidArgument,
    InvalidState,
    NotFound,
    Unauthorized,
)
from campusjam.infra.rate_limit import RateLimitExceeded

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please slow down and try again shortly."

_STATUS_BY_ERROR: Tuple[Tuple[Type[Exception], int], ...] = (
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Conflict, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_409_CONFLICT),
    (Internal, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


class ApiError(StarletteHTTPException):
    """HTTPException that also carries a human-readable message."""

    def __init__(self, status_code: int, reason: str, message: str) -> None:
        super().__init__(status_code=status_code, detail=reason)
        self.message = message


def map_domain_error(exc: Exception) -> ApiError:
    if isinstance(exc, RateLimitExceeded):
        return ApiError(status.HTTP_429_TOO_MANY_REQUESTS, getattr(exc, "reason", "rate_limited"), RATE_LIMIT_MESSAGE)
    if isinstance(exc, DomainError):
        for error_type, status_code in _STATUS_BY_ERROR:
            if isinstance(exc, error_type):
                return ApiError(status_code, exc.reason, exc.message)
        return ApiError(status.HTTP_400_BAD_REQUEST, exc.reason, exc.message)
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", Internal.message)


def _default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed."


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {
            "detail": exc.detail,
            "message": getattr(exc, "message", None) or _default_message(exc.status_code),
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        payload = {
            "detail": "validation_error",
            "message": "The request is malformed or missing required fields.",
            "errors": errors,
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.error(
            "unhandled_error",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"method": request.method, "path": request.url.path},
        )
        payload = {
            "detail": "internal_error",
            "message": Internal.message,
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


# Exceptions routers translate through map_domain_error.
DOMAIN_ERRORS = (DomainError, RateLimitExceeded)
