"""
Board Gateway — Request Logging Middleware
===========================================

What:  One access-log line per request: method, path, status, duration,
       request id and client address.
Why:   Uvicorn's access log has no request id and sees the proxy's address
       instead of the caller's when we run behind one.
How:   Wraps the rest of the pipeline and times it with perf_counter.

What we log vs what we DON'T log (privacy):
    ✅ method, path, status, duration, client IP, request ID
    ❌ request bodies, cookies, session ids
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.context import resolve_client_ip
from gateway.middleware.request_id import request_id_var

logger = logging.getLogger("gateway.access")

# Probed every few seconds by load balancers; logging them drowns real traffic.
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, trusted_hops: int = 0):
        super().__init__(app)
        self._trusted_hops = trusted_hops

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = resolve_client_ip(request, self._trusted_hops)
        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
