"""
Board Gateway — Request Context
================================

What:  The per-request record handed to collaborators, plus the helpers that
       resolve scheme, host and client address behind a reverse proxy.
Why:   Collaborators get one typed object (method, path, headers, body,
       session, ...) instead of reaching into Starlette internals.

Proxy trust:
    With one trusted hop, the proxy's view of the request wins:
      scheme    = first entry of X-Forwarded-Proto
      client IP = right-most entry of X-Forwarded-For (the address the
                  proxy itself saw; earlier entries are client-controlled)
    With no trusted hop both headers are ignored.
"""

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Mapping, Optional

from starlette.requests import Request

if TYPE_CHECKING:
    from gateway.sessions.session import Session


def resolve_scheme(request: Request, trusted_hops: int) -> str:
    if trusted_hops:
        forwarded = request.headers.get("x-forwarded-proto")
        if forwarded:
            return forwarded.split(",")[0].strip().lower()
    return request.url.scheme or "http"


def resolve_client_ip(request: Request, trusted_hops: int) -> str:
    if trusted_hops:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
            if hops:
                return hops[-min(trusted_hops, len(hops))]
    return request.client.host if request.client else "unknown"


@dataclass
class RequestContext:
    """Everything a collaborator needs to answer one request."""

    method: str
    path: str
    # Remainder of the path after the collaborator's mount prefix, e.g.
    # "/1/comments" for "/api/posts/1/comments" mounted at "/api/posts".
    subpath: str
    headers: Mapping[str, str]
    query: Mapping[str, str]
    scheme: str
    host: str
    client_ip: str
    origin: Optional[str] = None
    body: Any = None
    session: Optional["Session"] = None
    request: Optional[Request] = field(default=None, repr=False)

    @classmethod
    def from_request(cls, request: Request, trusted_hops: int) -> "RequestContext":
        path = request.url.path
        return cls(
            method=request.method,
            path=path,
            subpath=path,
            headers=request.headers,
            query=request.query_params,
            scheme=resolve_scheme(request, trusted_hops),
            host=request.headers.get("host", ""),
            client_ip=resolve_client_ip(request, trusted_hops),
            origin=request.headers.get("origin"),
            body=getattr(request.state, "json_body", None),
            session=getattr(request.state, "session", None),
            request=request,
        )

    def with_prefix(self, prefix: str) -> "RequestContext":
        """Same request, re-rooted under a collaborator's mount prefix."""
        subpath = self.path[len(prefix):] if self.path.startswith(prefix) else self.path
        return replace(self, subpath=subpath or "/")
