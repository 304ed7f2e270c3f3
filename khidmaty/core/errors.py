"""
khidmaty/core/errors.py

API error type and the global exception handlers.

Routers raise `ApiError(status, "code", "detail")`; the handler renders it as
`{"error": "code", "detail": "..."}`. Plain `HTTPException`s (router 404/405,
auth failures raised by FastAPI itself) are rendered with the same envelope.
Unhandled exceptions are logged and returned as `500 internal_error`; the
message is only exposed outside production.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from khidmaty.config import settings

logger = logging.getLogger("khidmaty.errors")

_STATUS_CODES = {
    400: "invalid_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    429: "rate_limited",
}


class ApiError(HTTPException):
    def __init__(
        self,
        status_code: int,
        error: str,
        detail: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error = error


def error_body(error: str, detail: Any = None) -> dict:
    body: dict[str, Any] = {"error": error}
    if detail is not None:
        body["detail"] = detail
    return body


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, ApiError):
        content = error_body(exc.error, exc.detail)
    else:
        code = _STATUS_CODES.get(exc.status_code, "error")
        content = error_body(code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request body"
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        detail = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    return JSONResponse(status_code=400, content=error_body("invalid_request", detail))


async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled exception on %s %s", request.method, request.url.path)
    if settings.is_production:
        return JSONResponse(status_code=500, content=error_body("internal_error"))
    return JSONResponse(status_code=500, content=error_body("internal_error", str(exc)[:200]))


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
