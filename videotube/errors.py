"""
Typed API errors and the terminal handlers that turn any raised error into the
uniform ``{statusCode, data, message, success, errors}`` envelope.
"""

import errno
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from videotube.utils.logger import setup_logger

logger = setup_logger("errors")

GENERIC_INTERNAL_MESSAGE = "Internal server error"
DB_UNAVAILABLE_MESSAGE = (
    "Database connection failed. The server may be offline or network connectivity is down."
)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"


def status_for(kind: ErrorKind) -> int:
    if kind is ErrorKind.VALIDATION:
        return status.HTTP_400_BAD_REQUEST
    if kind is ErrorKind.UNAUTHENTICATED:
        return status.HTTP_401_UNAUTHORIZED
    if kind is ErrorKind.FORBIDDEN:
        return status.HTTP_403_FORBIDDEN
    if kind is ErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if kind is ErrorKind.CONFLICT:
        return status.HTTP_409_CONFLICT
    if kind is ErrorKind.PAYLOAD_TOO_LARGE:
        return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    if kind is ErrorKind.INTERNAL:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if kind is ErrorKind.UNAVAILABLE:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    raise ValueError(f"Unhandled error kind: {kind}")


class ApiError(Exception):
    """Error raised by controllers and services; carries its kind and a client-safe message."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        errors: list[Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.errors = errors or []
        self.headers = headers

    @property
    def status_code(self) -> int:
        return status_for(self.kind)

    @classmethod
    def validation(cls, message: str, errors: list[Any] | None = None) -> "ApiError":
        return cls(ErrorKind.VALIDATION, message, errors=errors)

    @classmethod
    def unauthenticated(cls, message: str = "Unauthorized request") -> "ApiError":
        return cls(
            ErrorKind.UNAUTHENTICATED,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @classmethod
    def forbidden(cls, message: str) -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "ApiError":
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def internal(cls, message: str = GENERIC_INTERNAL_MESSAGE) -> "ApiError":
        return cls(ErrorKind.INTERNAL, message)

    @classmethod
    def unavailable(cls, message: str = DB_UNAVAILABLE_MESSAGE) -> "ApiError":
        return cls(ErrorKind.UNAVAILABLE, message)

    def __repr__(self):
        return f"<ApiError(kind={self.kind.value}, message='{self.message}')>"


def error_envelope(
    status_code: int,
    message: str,
    errors: list[Any] | None = None,
    detail: str | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "statusCode": status_code,
        "data": None,
        "message": message,
        "success": False,
        "errors": errors or [],
    }
    if detail is not None:
        body["detail"] = detail
    return body


def _include_detail(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.is_development)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the terminal handlers that produce the error envelope."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.kind in (ErrorKind.INTERNAL, ErrorKind.UNAVAILABLE):
            logger.error(f"{request.method} {request.url.path} -> {exc.message}")
        else:
            logger.info(
                f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.status_code, exc.message, exc.errors),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.info(f"{request.method} {request.url.path} -> 400 {errors}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_envelope(
                status.HTTP_400_BAD_REQUEST, "Validation failed", errors
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            message = "Route not found"
        elif isinstance(exc.detail, str):
            message = exc.detail
        else:
            message = "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(OSError)
    async def oserror_exception_handler(request: Request, exc: OSError):
        logger.error(f"OSError caught on {request.url.path}: {exc}, errno: {exc.errno}")
        if exc.errno in (errno.ETIMEDOUT, errno.ECONNREFUSED):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=error_envelope(
                    status.HTTP_503_SERVICE_UNAVAILABLE, DB_UNAVAILABLE_MESSAGE
                ),
            )
        detail = f"OSError: {exc}" if _include_detail(request) else None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                GENERIC_INTERNAL_MESSAGE,
                detail=detail,
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=True,
        )
        detail = f"{type(exc).__name__}: {exc}" if _include_detail(request) else None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                GENERIC_INTERNAL_MESSAGE,
                detail=detail,
            ),
        )
