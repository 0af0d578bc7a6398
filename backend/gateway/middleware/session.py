"""
Board Gateway — Session Middleware
===================================

What:  Attaches a Session to request.state.session and commits it after the
       route has produced its response.
Why:   Collaborators read and mutate the session; they never talk to the
       store or set cookies themselves.

Skipped paths:
    /health is a liveness probe and must answer even when the database is
    down, so it never opens a session.

Failed requests:
    When the route raises, this stage never reaches commit(); the error
    terminal commits the attached session on the error response instead.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.sessions.manager import SessionManager

SESSIONLESS_PATHS = frozenset({"/health"})


class SessionMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, manager: SessionManager):
        super().__init__(app)
        self._manager = manager

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SESSIONLESS_PATHS:
            return await call_next(request)

        session = await self._manager.open(request)
        request.state.session = session

        response = await call_next(request)
        await self._manager.commit(session, request, response)
        return response
