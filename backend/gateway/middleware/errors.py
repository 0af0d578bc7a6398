"""
Board Gateway — Error Terminal Middleware
==========================================

What:  Catches any exception escaping the inner pipeline and turns it into
       the error envelope.
Why:   Exceptions raised in middleware (origin denial, malformed bodies,
       session store failures) never reach FastAPI's exception handlers, and
       Starlette's own catch-all runs outside every middleware, where the
       security headers would be lost. Catching here keeps one terminal stage
       for every failure.
How:   CORS headers computed by OriginPolicyMiddleware for an admitted
       request are carried over from request.state, so cross-origin callers
       can read the error body.

Sessions:
    A handler that binds an identity and then raises still gets its session
    committed on the error response. A commit that fails here is logged and
    the error envelope is sent regardless.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.config import Settings
from gateway.exceptions import SessionStoreError
from gateway.fallback import render_error
from gateway.sessions.manager import SessionManager, current_session

logger = logging.getLogger(__name__)


class ErrorTerminalMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, settings: Settings, manager: Optional[SessionManager] = None):
        super().__init__(app)
        self._settings = settings
        self._manager = manager

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            headers = getattr(request.state, "cors_headers", None)
            response = render_error(request, exc, self._settings, headers=headers)
            if headers:
                response.headers.add_vary_header("Origin")
            await self._commit_session(request, response)
            return response

    async def _commit_session(self, request: Request, response: Response) -> None:
        session = current_session(request)
        if session is None or self._manager is None:
            return
        try:
            await self._manager.commit(session, request, response)
        except SessionStoreError as exc:
            logger.error(
                "Session commit on error response failed: %s | Context: %s",
                exc.message,
                exc.context,
            )
