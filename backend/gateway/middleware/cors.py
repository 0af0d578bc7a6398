"""
Board Gateway — Origin Policy Middleware
=========================================

What:  First decision stage of the pipeline: admit or deny by Origin.
Why:   Runs before the body is read and before any session is loaded, so a
       foreign site never gets as far as touching session state.
How:   Evaluates OriginPolicy synchronously.
         denied    → raise OriginDeniedError (rendered by the error terminal)
         OPTIONS   → fast 204 with preflight headers, routing never runs
         admitted  → continue; CORS headers are added to the response

Unlike Starlette's CORSMiddleware, a disallowed origin is rejected outright
instead of being served without CORS headers.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.cors import OriginPolicy, cors_headers, preflight_headers
from gateway.exceptions import OriginDeniedError


class OriginPolicyMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, policy: OriginPolicy):
        super().__init__(app)
        self._policy = policy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        admission = self._policy.evaluate(request.headers.get("origin"))
        if not admission.admitted:
            raise OriginDeniedError(admission.origin)

        if request.method == "OPTIONS":
            response = Response(
                status_code=204,
                headers=preflight_headers(
                    admission, request.headers.get("access-control-request-headers")
                ),
            )
            response.headers.add_vary_header("Origin")
            if request.headers.get("access-control-request-headers"):
                response.headers.add_vary_header("Access-Control-Request-Headers")
            return response

        headers = cors_headers(admission)
        request.state.cors_headers = headers

        response = await call_next(request)
        response.headers.update(headers)
        response.headers.add_vary_header("Origin")
        return response
