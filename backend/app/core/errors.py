# backend/app/core/errors.py

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config_loader import settings
from app.core.logger import logger
from app.models.response_models import error_response


# ---------------------------------------------------------------------------
# ERROR TAXONOMY
# ---------------------------------------------------------------------------
class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors
        self.code = code
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "User not authenticated"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class LoginFailed(AppError):
    status_code = 502
    default_message = "Login failed"


class ProfileFetchFailed(AppError):
    status_code = 502
    default_message = "Failed to fetch profile"


class CorsRejected(AppError):
    status_code = 403
    default_message = "CORS policy violation"


class ConversationNotFound(AppError):
    status_code = 404
    default_message = "Conversation not found"


class UpstreamTimeout(AppError):
    status_code = 408
    default_message = "Request timeout"


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "External service unavailable"


# ---------------------------------------------------------------------------
# VALIDATION ERROR SHAPING
# ---------------------------------------------------------------------------
LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}

FIELD_MESSAGES = {
    "email": "Please provide a valid email address",
    "password": "Password is required",
    "title": "Title must be between 1 and 200 characters",
    "initialMessage": "Initial message must be between 1 and 10000 characters",
    "content": "Message content must be between 1 and 10000 characters",
    "role": "Role must be one of: user, assistant, system, error",
    "metadata": "Metadata must be an object",
    "metadata.model": "Model name cannot exceed 100 characters",
    "metadata.tokens": "Tokens must be a non-negative integer",
    "isActive": "isActive must be a boolean value",
    "conversation_id": "Invalid conversation ID",
    "page": "Page must be between 1 and 10000",
    "limit": "Limit must be between 1 and 100",
    "query": "Search query must be between 1 and 200 characters",
}


def _field_name(loc: Sequence[Any]) -> str:
    parts = list(loc)
    if len(parts) > 1 and parts[0] in LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(str(p) for p in parts) or "unknown"


def format_validation_errors(raw_errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Turn pydantic/FastAPI error dicts into the `[{field, message}]` list
    of the response envelope. Known fields get a readable message, anything
    else keeps pydantic's own text.
    """
    formatted = []
    for err in raw_errors:
        field = _field_name(err.get("loc", ()))
        formatted.append({
            "field": field,
            "message": FIELD_MESSAGES.get(field, err.get("msg", "Invalid value")),
        })
    return formatted


# ---------------------------------------------------------------------------
# HANDLERS
# ---------------------------------------------------------------------------
def _validation_response(errors: List[Dict[str, str]]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_response("Validation failed", errors=errors),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    body = error_response(exc.message, errors=exc.errors)
    if exc.code:
        body["error"] = exc.code
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = format_validation_errors(exc.errors())
    logger.debug("Validation failed on %s %s: %s", request.method, request.url.path, errors)
    return _validation_response(errors)


async def document_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    errors = format_validation_errors(exc.errors())
    logger.warning("Document validation failed on %s %s: %s", request.method, request.url.path, errors)
    return _validation_response(errors)


async def invalid_id_handler(request: Request, exc: InvalidId) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_response("Invalid ID format"))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), "value")
    return JSONResponse(status_code=400, content=error_response(f"{field} already exists"))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error: %s | method=%s url=%s ip=%s user_agent=%s timestamp=%s",
        exc,
        request.method,
        request.url.path,
        request.client.host if request.client else None,
        request.headers.get("user-agent"),
        datetime.now(timezone.utc).isoformat(),
        exc_info=exc,
    )
    body = error_response("Internal server error")
    if not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=jsonable_encoder(body))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, document_validation_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
