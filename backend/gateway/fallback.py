"""
Board Gateway — Fallback Handler
=================================

What:  The two terminal states of the pipeline: Not Found and Error.
Why:   Every failure, wherever it is raised (origin check, body parsing,
       session store, a collaborator), is rendered here and nowhere else,
       so clients always get the same envelope.

Envelopes:
    Not Found → 404 {"ok": false, "message": "Not Found"}
    Error     → <status> {"ok": false, "message": "...", "stack": "..."}

Status resolution:
    GatewayError subclasses declare `status_code`. Collaborator exceptions
    may declare `status_code` or `status`. Anything outside 400-599 (or
    missing) becomes 500.

Security:
    `stack` is only rendered outside production. Every error is logged
    server-side, in every environment, before the response is built.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.config import Settings
from gateway.exceptions import GatewayError
from gateway.middleware.request_id import request_id_var
from gateway.schemas.envelope import ErrorEnvelope

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = {"ok": False, "message": "Not Found"}


def not_found_response() -> JSONResponse:
    return JSONResponse(status_code=404, content=dict(NOT_FOUND_BODY))


def error_status(exc: BaseException) -> int:
    for attribute in ("status_code", "status"):
        value = getattr(exc, attribute, None)
        if isinstance(value, int) and 400 <= value <= 599:
            return value
    return 500


def error_message(exc: BaseException) -> str:
    if isinstance(exc, GatewayError):
        return exc.message
    if isinstance(exc, StarletteHTTPException):
        return str(exc.detail)
    return str(exc) or "Server Error"


def error_envelope(exc: BaseException, include_stack: bool) -> Dict[str, Any]:
    stack = None
    if include_stack:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    envelope = ErrorEnvelope(message=error_message(exc), stack=stack)
    return envelope.model_dump(exclude_none=True)


def render_error(
    request: Request,
    exc: BaseException,
    settings: Settings,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Log the failure and build the error envelope response."""
    status = error_status(exc)
    rid = request_id_var.get("")
    context = exc.context if isinstance(exc, GatewayError) else {}

    logger.error(
        "[%s] %s %s -> %d %s: %s%s",
        rid,
        request.method,
        request.url.path,
        status,
        type(exc).__name__,
        error_message(exc),
        f" | Context: {context}" if context else "",
        exc_info=(type(exc), exc, exc.__traceback__) if status >= 500 else None,
    )

    return JSONResponse(
        status_code=status,
        content=error_envelope(exc, include_stack=not settings.is_production),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """
    Route HTTPExceptions (raised by collaborators or by the framework)
    through the same renderer. Everything else propagates to
    ErrorTerminalMiddleware.
    """

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return render_error(request, exc, settings, headers=getattr(exc, "headers", None))
