"""API error codes and their translation into `{code, message}` responses.

Codes in the range 1000..2000 are client errors answered with HTTP 400,
codes from 2000 on are server errors answered with HTTP 500.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from borg_hive.core.logging import get_logger

logger = get_logger(__name__)


class ApiStatusCode(IntEnum):
    UNAUTHENTICATED = 1000
    NOT_FOUND = 1001
    INVALID_JSON = 1003
    NAME_ALREADY_EXISTS = 1007
    INVALID_NAME = 1008
    REPOSITORY_ALREADY_EXISTS = 1010

    INTERNAL_SERVER_ERROR = 2000
    DATABASE_ERROR = 2001


_DEFAULT_MESSAGES = {
    ApiStatusCode.UNAUTHENTICATED: "Unauthenticated",
    ApiStatusCode.NOT_FOUND: "The resource was not found",
    ApiStatusCode.INVALID_JSON: "Json error",
    ApiStatusCode.NAME_ALREADY_EXISTS: "There exists already an entity with that name",
    ApiStatusCode.INVALID_NAME: "Invalid name specified",
    ApiStatusCode.REPOSITORY_ALREADY_EXISTS: "There exists already an entity with that repository",
    ApiStatusCode.INTERNAL_SERVER_ERROR: "Internal server error",
    ApiStatusCode.DATABASE_ERROR: "Database error occurred",
}


class ApiError(Exception):
    """Raised by handlers; rendered as an ApiErrorResponse."""

    def __init__(self, code: ApiStatusCode, message: str | None = None) -> None:
        self.code = code
        self.message = message or _DEFAULT_MESSAGES[code]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return 400 if self.code < 2000 else 500


def _error_response(error: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"code": int(error.code), "message": error.message},
    )


async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.DEBUG
    logger.log(level, "%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Received invalid json: %s", exc.errors())
    return _error_response(ApiError(ApiStatusCode.INVALID_JSON, f"Json error: {exc.errors()}"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)


__all__ = ["ApiError", "ApiStatusCode", "install_error_handlers"]
