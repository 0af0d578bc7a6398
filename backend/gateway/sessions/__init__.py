"""
Board Gateway — Server-Side Sessions
=====================================

    cookies.py   signed `sid` cookie values and identifier generation
    session.py   typed payload, stored record, per-request Session object
    store.py     SQLAlchemy-backed SessionStore and the expiry sweeper
    manager.py   open/commit lifecycle used by SessionMiddleware
"""

from gateway.sessions.cookies import SESSION_COOKIE_NAME
from gateway.sessions.manager import SessionManager, current_session
from gateway.sessions.session import Session, SessionPayload, SessionRecord
from gateway.sessions.store import SessionStore

__all__ = [
    "SESSION_COOKIE_NAME",
    "Session",
    "SessionManager",
    "SessionPayload",
    "SessionRecord",
    "SessionStore",
    "current_session",
]
