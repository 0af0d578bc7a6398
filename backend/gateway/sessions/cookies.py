"""
Signed `sid` cookie values.

Format: ``s:<session id>.<signature>`` where the signature is the unpadded
URL-safe base64 HMAC-SHA256 of the id under SESSION_SECRET. Every character
is cookie-safe, so the value is never quoted by the cookie encoder.
"""

import base64
import hashlib
import hmac
import secrets
from typing import Optional

SESSION_COOKIE_NAME = "sid"

_PREFIX = "s:"


def new_session_id() -> str:
    """A fresh 256-bit identifier. Identifiers are never reissued."""
    return secrets.token_urlsafe(32)


def _signature(session_id: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), session_id.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign(session_id: str, secret: str) -> str:
    return f"{_PREFIX}{session_id}.{_signature(session_id, secret)}"


def unsign(value: Optional[str], secret: str) -> Optional[str]:
    """Return the session id from a cookie value, or None if it does not verify."""
    if not value or not value.startswith(_PREFIX):
        return None
    session_id, sep, signature = value[len(_PREFIX):].rpartition(".")
    if not sep or not session_id:
        return None
    if not hmac.compare_digest(signature, _signature(session_id, secret)):
        return None
    return session_id
