"""
Board Gateway — Session Lifecycle
==================================

What:  Opens a session for each request and commits it with the response.
Why:   Keeps the "attach → mutate → persist-if-dirty" rules in one place;
       the middleware only calls open() and commit().

open(request):
    1. Read and verify the signed `sid` cookie.
    2. load() the record. Missing, expired or forged → fresh in-memory session
       (never persisted until something is written into it).

commit(session, request, response):
    destroyed             → delete record(s), clear the cookie
    regenerated           → delete the retired record(s), then as below
    new and unmodified    → nothing (no row, no cookie)
    modified              → save with a new expiry, (re)issue the cookie
    touched / rolling     → extend the expiry, reissue the cookie
    otherwise             → nothing; the existing cookie is left alone

Cookie attributes: HttpOnly, SameSite=Lax, Path=/, Max-Age=SESSION_MAX_AGE,
Secure only in production with USE_SECURE_COOKIE. A Secure cookie is not
emitted on a request whose resolved scheme is http; the record is still saved.
"""

import logging
from datetime import datetime
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from gateway.config import Settings
from gateway.context import resolve_scheme
from gateway.sessions.cookies import SESSION_COOKIE_NAME, sign, unsign
from gateway.sessions.session import Session
from gateway.sessions.store import SessionStore, utcnow

logger = logging.getLogger(__name__)


class SessionManager:

    def __init__(self, store: SessionStore, settings: Settings):
        self.store = store
        self._settings = settings

    async def open(self, request: Request) -> Session:
        session_id = unsign(request.cookies.get(SESSION_COOKIE_NAME), self._settings.session_secret)
        if session_id is None:
            return Session.fresh()

        record = await self.store.load(session_id)
        if record is None:
            logger.debug("Session cookie %s... did not resolve; starting fresh", session_id[:8])
            return Session.fresh()
        return Session.from_record(record)

    async def commit(self, session: Session, request: Request, response: Response) -> None:
        for retired in session.replaced_ids:
            await self.store.destroy(retired)

        if session.destroyed:
            if not session.is_new:
                await self.store.destroy(session.id)
            self._clear_cookie(response)
            return

        now = utcnow()
        expires_at = now + self.store.max_age

        if session.is_modified:
            await self.store.save(session.to_record(expires_at, now))
        elif session.is_new:
            # Uninitialized: no row, no cookie.
            return
        elif session.touched or self._settings.session_touch_on_read:
            await self.store.touch(session.id, expires_at)
        else:
            return

        session.mark_persisted(expires_at)
        self._set_cookie(session, request, response)

    # ── Cookie ────────────────────────────────────────────────────────────

    def _cookie_allowed(self, request: Request) -> bool:
        if not self._settings.secure_cookie:
            return True
        return resolve_scheme(request, self._settings.trust_proxy_hops) == "https"

    def _set_cookie(self, session: Session, request: Request, response: Response) -> None:
        if not self._cookie_allowed(request):
            logger.debug("Not setting secure session cookie on a non-https request")
            return
        response.set_cookie(
            SESSION_COOKIE_NAME,
            sign(session.id, self._settings.session_secret),
            max_age=int(self.store.max_age.total_seconds()),
            path="/",
            httponly=True,
            samesite="lax",
            secure=self._settings.secure_cookie,
        )

    def _clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            SESSION_COOKIE_NAME,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self._settings.secure_cookie,
        )


def current_session(request: Request) -> Optional[Session]:
    """The session attached by SessionMiddleware, if the path has one."""
    return getattr(request.state, "session", None)
