"""
Board Gateway — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions raised anywhere in the request pipeline.
Why:   Each class carries the HTTP status the Fallback Handler renders, so
       no component other than the terminal stage writes an error response.
How:   Each exception holds a message (safe to render) and a context dict
       (logged server-side, never rendered).

Exception Hierarchy:
    GatewayError (base)                → 500
    ├── OriginDeniedError              → 403 (origin not in the allow-set)
    ├── MalformedBodyError             → 400 (unparseable JSON body)
    ├── PayloadTooLargeError           → 413 (JSON body over the limit)
    ├── DatabaseError                  → 500
    │   └── SessionStoreError          → 500 (session load/save/destroy failed)
    │       └── SessionStoreTimeoutError → 503 (store did not answer in time)
    └── ConfigurationError             → raised at startup only

Collaborator exceptions are not required to derive from GatewayError; the
Fallback Handler reads `status_code` or `status` from any exception.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message:     User-facing error description (rendered in the envelope)
        status_code: HTTP status of the error response
        context:     Additional debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Server Error",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class OriginDeniedError(GatewayError):
    """
    Raised when a request declares an Origin outside the allow-set.

    The rendered message is fixed; the offending origin only goes to the log
    so the response cannot be used to probe the allow-list.
    """

    status_code = 403

    def __init__(self, origin: str):
        super().__init__(message="Not allowed by CORS", context={"origin": origin})
        self.origin = origin


class MalformedBodyError(GatewayError):
    """Raised when a JSON request body cannot be parsed."""

    status_code = 400

    def __init__(self, message: str = "Malformed JSON request body", context=None):
        super().__init__(message=message, context=context)


class PayloadTooLargeError(GatewayError):
    status_code = 413

    def __init__(self, limit: int):
        super().__init__(
            message="Request entity too large",
            context={"limit": limit},
        )
        self.limit = limit


class DatabaseError(GatewayError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The rendered message is always generic. The driver error is kept on
        the exception chain and in `context` for the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SessionStoreError(DatabaseError):
    """A session store operation (load/save/touch/destroy) failed."""

    def __init__(self, operation: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["operation"] = operation
        super().__init__(message="Session storage is unavailable.", context=ctx)
        self.operation = operation


class SessionStoreTimeoutError(SessionStoreError):
    status_code = 503

    def __init__(self, operation: str, timeout: float):
        super().__init__(operation, context={"timeout": timeout})
        self.timeout = timeout


class ConfigurationError(GatewayError):
    """Invalid configuration detected while building the application."""
