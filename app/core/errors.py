from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "
_REQUEST_SOURCES = {"body", "path", "query", "header", "cookie"}


class CatalogError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CatalogValidationError(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST


class CatalogNotFoundError(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND


class CatalogStoreError(CatalogError):
    """A write or read against the store failed; the message never carries driver detail."""


def error_envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        message = error.get("msg", "Invalid value")
        if error.get("type") == "value_error":
            # Raised by our own schema validators; the message is already user-facing.
            parts.append(message.removeprefix(_VALUE_ERROR_PREFIX))
            continue
        location = [str(part) for part in error.get("loc", ()) if part not in _REQUEST_SOURCES]
        field = ".".join(location)
        parts.append(f"{field}: {message}" if field else message)
    return "; ".join(parts) or "Invalid request"


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_envelope(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_envelope(status.HTTP_400_BAD_REQUEST, _validation_message(exc))


async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    return error_envelope(exc.status_code, exc.message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error endpoint=%s %s", request.method, request.url.path)
    return error_envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CatalogError, catalog_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
