from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings

logger = logging.getLogger(__name__)

INVALID_DATA = "The given data was invalid."


class ApiError(Exception):
    """
    Base for every error a handler raises on purpose.

    Converted to a JSON envelope by install_error_handlers():
        {"message": ..., "errors": {field: [msg, ...]}}   (errors only when set)
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, List[str]]] = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 422
    default_message = INVALID_DATA

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(INVALID_DATA, {field: [message]})


class ConflictError(ValidationError):
    """
    A uniqueness rule was violated (duplicate email, already a member...).
    Surfaced like a validation failure on the offending field.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(INVALID_DATA, {field: [message]})


class AuthError(ApiError):
    status_code = 401
    default_message = "Unauthenticated."


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Forbidden."


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found."


class InternalError(ApiError):
    status_code = 500


def _field_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    """
    Flatten pydantic errors into {field: [messages]}.

    The field is the last string element of the location, so
    ("body", "email") and ("body", "data", "name") map to "email" / "name".
    A body that isn't an object at all is reported under "body".
    """
    out: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if not isinstance(p, int)]
        field = loc[-1] if loc else "body"
        out.setdefault(field, []).append(str(err.get("msg", "Invalid value")))
    return out


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"message": INVALID_DATA, "errors": _field_errors(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail
        if exc.status_code == 404 and detail == "Not Found":
            detail = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        internal = InternalError()
        content = internal.to_body()
        if settings.is_development:
            content["error"] = str(exc)
        return JSONResponse(status_code=internal.status_code, content=content)
