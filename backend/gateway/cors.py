"""
Board Gateway — Origin Policy
==============================

What:  Decides whether a request's declared Origin is admitted.
Why:   Session cookies are sent cross-origin (credentials mode), so every
       admitted origin must be an exact, explicit match. A wildcard would let
       any site read authenticated responses.
How:   A pure function over (origin, allow-set) returning a tagged result.
       The pipeline calls it synchronously and raises on denial.

Admission rules:
    no Origin header         → admit (same-origin, curl, server-to-server)
    Origin in the allow-set  → admit, reflect the origin in CORS headers
    anything else            → deny  (including the literal "null")
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

# Methods advertised on preflight responses.
PREFLIGHT_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"

# Response headers browser scripts may read on admitted cross-origin calls.
EXPOSED_HEADERS = "X-Request-ID"


@dataclass(frozen=True)
class Admission:
    """Outcome of an origin check. `origin` is None for origin-less requests."""

    admitted: bool
    origin: Optional[str] = None

    @property
    def cross_origin(self) -> bool:
        return self.admitted and self.origin is not None


def evaluate_origin(origin: Optional[str], allowed: FrozenSet[str]) -> Admission:
    if not origin:
        return Admission(admitted=True)
    return Admission(admitted=origin in allowed, origin=origin)


class OriginPolicy:
    """The process-wide allow-set, fixed at construction."""

    def __init__(self, allowed: Iterable[str]):
        self._allowed = frozenset(allowed)

    @property
    def allowed(self) -> FrozenSet[str]:
        return self._allowed

    def evaluate(self, origin: Optional[str]) -> Admission:
        return evaluate_origin(origin, self._allowed)


def cors_headers(admission: Admission) -> Dict[str, str]:
    """Headers attached to every response of an admitted cross-origin request."""
    if not admission.cross_origin:
        return {}
    return {
        "Access-Control-Allow-Origin": admission.origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Expose-Headers": EXPOSED_HEADERS,
    }


def preflight_headers(admission: Admission, requested_headers: Optional[str]) -> Dict[str, str]:
    """Headers for the fast OPTIONS response."""
    headers = {}
    if admission.cross_origin:
        headers["Access-Control-Allow-Origin"] = admission.origin
        headers["Access-Control-Allow-Credentials"] = "true"
    headers["Access-Control-Allow-Methods"] = PREFLIGHT_METHODS
    if requested_headers:
        headers["Access-Control-Allow-Headers"] = requested_headers
    return headers
