"""
Board Gateway — Session Object & Cookie Tests
==============================================

What we test:
    ✅ Cookie signatures verify, and tampered/foreign values are rejected
    ✅ Fresh sessions are clean; identity binding and nested extras mark dirty
    ✅ regenerate() retires the old id and never reuses identifiers
"""

from datetime import datetime, timedelta, timezone

from starlette.requests import Request

from gateway.sessions.cookies import new_session_id, sign, unsign
from gateway.sessions.manager import current_session
from gateway.sessions.session import Session, SessionPayload, SessionRecord

SECRET = "test-secret"


class TestCookieSigning:

    def test_round_trip(self):
        sid = new_session_id()
        assert unsign(sign(sid, SECRET), SECRET) == sid

    def test_value_is_cookie_safe(self):
        value = sign(new_session_id(), SECRET)
        allowed = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.:")
        assert set(value) <= allowed

    def test_wrong_secret_rejected(self):
        assert unsign(sign("abc", SECRET), "other-secret") is None

    def test_tampered_id_rejected(self):
        value = sign("abc", SECRET)
        assert unsign(value.replace("s:abc", "s:abd"), SECRET) is None

    def test_unsigned_values_rejected(self):
        assert unsign(None, SECRET) is None
        assert unsign("", SECRET) is None
        assert unsign("abc", SECRET) is None
        assert unsign("s:abc", SECRET) is None
        assert unsign("s:.sig", SECRET) is None

    def test_identifiers_are_unique(self):
        ids = {new_session_id() for _ in range(200)}
        assert len(ids) == 200


class TestSessionState:

    def test_fresh_session_is_new_and_clean(self):
        session = Session.fresh()
        assert session.is_new
        assert not session.is_modified
        assert not session.is_authenticated

    def test_login_marks_modified(self):
        session = Session.fresh()
        session.login(42)
        assert session.is_modified
        assert session.user_id == 42

    def test_nested_extra_mutation_marks_modified(self):
        session = Session("sid", SessionPayload(extra={"cart": []}), is_new=False)
        session.payload.extra["cart"].append(1)
        assert session.is_modified

    def test_setting_same_value_is_not_a_change(self):
        session = Session("sid", SessionPayload(user_id=7), is_new=False)
        session.login(7)
        assert not session.is_modified

    def test_from_record_does_not_share_payload(self):
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            id="sid",
            payload=SessionPayload(user_id=1),
            expires_at=now + timedelta(days=1),
            touched_at=now,
        )
        session = Session.from_record(record)
        session.logout()
        assert record.payload.user_id == 1
        assert not session.is_new

    def test_regenerate_retires_stored_id(self):
        session = Session("old-id", SessionPayload(user_id=1), is_new=False)
        session.regenerate()
        assert session.id != "old-id"
        assert session.replaced_ids == ["old-id"]
        assert session.is_new
        assert session.user_id is None

    def test_regenerate_fresh_session_retires_nothing(self):
        session = Session.fresh()
        session.regenerate()
        assert session.replaced_ids == []

    def test_mark_persisted_resets_flags(self):
        session = Session.fresh()
        session.login(3)
        session.touch()
        session.mark_persisted(datetime.now(timezone.utc))
        assert not session.is_new
        assert not session.is_modified
        assert not session.touched


class TestCurrentSession:

    def _request(self, state):
        return Request({"type": "http", "method": "GET", "path": "/", "headers": [], "state": state})

    def test_attached_session(self):
        session = Session.fresh()
        assert current_session(self._request({"session": session})) is session

    def test_sessionless_path(self):
        assert current_session(self._request({})) is None
