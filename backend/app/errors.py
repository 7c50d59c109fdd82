"""API error taxonomy and the response envelope.

Every failure leaves the API as
``{statusCode, message, success: false, errors: [...]}`` and every success
as ``{statusCode, data, message, success: true}``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from propertyhub.cache import to_cacheable

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors rendered to the client."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Not allowed"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class PayloadTooLargeError(ApiError):
    status_code = 413
    default_message = "Request body too large"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"


def api_response(data: Any, message: str, status_code: int = 200) -> JSONResponse:
    """Wrap a successful result in the response envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": to_cacheable(data),
            "message": message,
            "success": True,
        },
    )


def error_response(status_code: int, message: str, errors: Optional[list] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "message": message,
            "success": False,
            "errors": errors or [],
        },
    )


def _validation_details(exc: RequestValidationError) -> list[dict]:
    details = []
    for err in exc.errors():
        details.append({
            "field": ".".join(str(p) for p in err.get("loc", ())),
            "message": err.get("msg", ""),
        })
    return details


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message, exc.errors)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _validation_details(exc)
    message = details[0]["message"] if len(details) == 1 else "Invalid request"
    return error_response(ValidationError.status_code, message, details)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(InternalError.status_code, InternalError.default_message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
