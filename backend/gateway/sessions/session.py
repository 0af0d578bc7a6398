"""
Board Gateway — Session Object & Record
========================================

What:  The typed session payload, the persisted record, and the mutable
       per-request `Session` handed to collaborators.
Why:   Handlers bind an identity with `session.login(user_id)` instead of
       writing string keys into a bag; everything else goes into `extra`.
How:   `Session` snapshots its payload when it is opened. The manager asks
       `is_modified` at the end of the request and persists only then, so
       anonymous traffic never writes empty rows.

Lifecycle flags, read by SessionManager.commit():
    is_new       created during this request (no stored record yet)
    is_modified  payload differs from the snapshot taken when opened
    touched      expiry refresh requested without a payload change
    destroyed    record must be deleted and the cookie cleared
    replaced_ids identifiers retired by regenerate(), deleted on commit
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from gateway.sessions.cookies import new_session_id

UserId = Union[int, str]


class SessionPayload(BaseModel):
    """What a session stores: an optional identity plus free-form extras."""

    user_id: Optional[UserId] = Field(
        default=None,
        description="Identity bound by the auth handler at login",
    )
    extra: Dict[str, Any] = Field(default_factory=dict)


class SessionRecord(BaseModel):
    """A session as the store sees it."""

    id: str
    payload: SessionPayload = Field(default_factory=SessionPayload)
    expires_at: datetime
    touched_at: datetime


class Session:
    """Mutable session attached to `request.state.session`."""

    def __init__(
        self,
        session_id: str,
        payload: Optional[SessionPayload] = None,
        *,
        is_new: bool,
        expires_at: Optional[datetime] = None,
    ):
        self._id = session_id
        self.payload = payload if payload is not None else SessionPayload()
        self._snapshot = self.payload.model_dump(mode="json")
        self._is_new = is_new
        self.expires_at = expires_at
        self._touched = False
        self._destroyed = False
        self._replaced_ids: List[str] = []

    @classmethod
    def fresh(cls) -> "Session":
        return cls(new_session_id(), is_new=True)

    @classmethod
    def from_record(cls, record: SessionRecord) -> "Session":
        return cls(
            record.id,
            record.payload.model_copy(deep=True),
            is_new=False,
            expires_at=record.expires_at,
        )

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self._id

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_modified(self) -> bool:
        return self.payload.model_dump(mode="json") != self._snapshot

    @property
    def touched(self) -> bool:
        return self._touched

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def replaced_ids(self) -> List[str]:
        return list(self._replaced_ids)

    # ── Identity ──────────────────────────────────────────────────────────

    @property
    def user_id(self) -> Optional[UserId]:
        return self.payload.user_id

    @property
    def is_authenticated(self) -> bool:
        return self.payload.user_id is not None

    def login(self, user_id: UserId) -> None:
        self.payload.user_id = user_id

    def logout(self) -> None:
        """Unbind the identity but keep the session (and its extras)."""
        self.payload.user_id = None

    # ── Extras ────────────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.extra.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.payload.extra[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        return self.payload.extra.pop(key, default)

    # ── Lifecycle requests ────────────────────────────────────────────────

    def touch(self) -> None:
        """Ask for the expiry to be pushed out even if nothing changed."""
        self._touched = True

    def destroy(self) -> None:
        self._destroyed = True

    def regenerate(self) -> None:
        """
        Swap to a brand-new identifier with an empty payload.

        Call before binding an identity at login so a pre-login cookie
        planted by someone else cannot be promoted to an authenticated one.
        """
        if not self._is_new:
            self._replaced_ids.append(self._id)
        self._id = new_session_id()
        self._is_new = True
        self.payload = SessionPayload()
        self._snapshot = self.payload.model_dump(mode="json")
        self.expires_at = None

    # ── Persistence helpers (used by SessionManager) ──────────────────────

    def to_record(self, expires_at: datetime, now: datetime) -> SessionRecord:
        return SessionRecord(
            id=self._id,
            payload=self.payload.model_copy(deep=True),
            expires_at=expires_at,
            touched_at=now,
        )

    def mark_persisted(self, expires_at: datetime) -> None:
        self._snapshot = self.payload.model_dump(mode="json")
        self._is_new = False
        self._touched = False
        self._replaced_ids.clear()
        self.expires_at = expires_at

    def __repr__(self) -> str:
        return (
            f"<Session(id='{self._id[:8]}...', user_id={self.user_id!r}, "
            f"new={self._is_new}, modified={self.is_modified})>"
        )
