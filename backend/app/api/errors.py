"""Global error handlers rendering the `{message, code, request_id}` envelope.

The client surfaces `message` verbatim in a toast, so every non-2xx response
carries one, including framework-level validation and routing errors.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.request_id import get_request_id
from app.domain.common.errors import DomainError

_DEFAULT_MESSAGES = {
    400: "Bad request",
    401: "Authentication required",
    403: "You do not have permission to do that",
    404: "Not found",
    405: "Method not allowed",
    409: "Conflict",
    422: "Invalid request",
    429: "Too many requests, please slow down",
}


def error_payload(status_code: int, detail: Any, request: Request) -> dict:
    if isinstance(detail, dict):
        code = str(detail.get("code") or "error")
        message = str(detail.get("message") or _DEFAULT_MESSAGES.get(status_code, code))
    else:
        code = str(detail) if detail else "error"
        message = _DEFAULT_MESSAGES.get(status_code, code)
    return {"message": message, "code": code, "request_id": get_request_id(request)}


def _first_validation_message(errors: list[dict]) -> str:
    if not errors:
        return _DEFAULT_MESSAGES[422]
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    msg = str(first.get("msg") or "invalid value")
    return f"{field}: {msg}" if field else msg


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = error_payload(exc.status_code, exc.detail, request)
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(DomainError)
    async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
        payload = error_payload(exc.status_code, exc.as_detail(), request)
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = exc.errors()
        payload = {
            "message": _first_validation_message(errors),
            "code": "validation_error",
            "errors": [{k: v for k, v in err.items() if k != "ctx"} for err in errors],
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=422, content=payload)
