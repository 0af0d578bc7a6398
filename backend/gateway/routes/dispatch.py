"""
Board Gateway — Collaborator Dispatch Route
============================================

What:  Catch-all route registered after the built-in endpoints. Builds the
       RequestContext and hands it to the dispatch table.
Why:   Anything the gateway does not answer itself belongs to a mounted
       collaborator or is Not Found. Authorization is the collaborator's job.
"""

from fastapi import APIRouter, Request
from starlette.responses import Response

from gateway.context import RequestContext
from gateway.fallback import not_found_response

router = APIRouter()

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@router.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
async def dispatch_to_collaborator(request: Request, path: str) -> Response:
    state = request.app.state
    ctx = RequestContext.from_request(request, state.settings.trust_proxy_hops)
    response = await state.dispatch_table.dispatch(ctx)
    if response is None:
        return not_found_response()
    return response
