"""
Board Gateway — Request ID Middleware
======================================

What:  Gives each request a short correlation id and echoes it back in
       the X-Request-ID response header.
Why:   Error envelopes are generic; the id is what ties a client report to
       the server-side log line carrying the stack trace.
How:   Stored in a ContextVar so loggers anywhere in the request can read
       it; RequestIDFilter copies it onto every log record.

A client-supplied X-Request-ID is reused when it is short and printable,
so a frontend can correlate its own logs with ours.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_MAX_CLIENT_ID_LENGTH = 64


def _accept_client_id(value: str) -> bool:
    return 0 < len(value) <= _MAX_CLIENT_ID_LENGTH and value.isprintable()


class RequestIDFilter(logging.Filter):
    """Adds `request_id` to every record so formats can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _accept_client_id(supplied) else uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
