"""
Board Gateway — Error Rendering Unit Tests
===========================================

What we test:
    ✅ Status resolution: declared status_code / status, clamped to 4xx-5xx
    ✅ Messages: GatewayError message, HTTPException detail, str(exc)
    ✅ Envelope shape with and without the stack
    ✅ JSON body parsing rules
"""

import pytest
from starlette.exceptions import HTTPException

from gateway.exceptions import (
    DatabaseError,
    MalformedBodyError,
    OriginDeniedError,
    PayloadTooLargeError,
    SessionStoreError,
    SessionStoreTimeoutError,
)
from gateway.fallback import error_envelope, error_message, error_status, not_found_response
from gateway.middleware.body import parse_json_body


class StatusAttribute(Exception):
    status = 409


class OutOfRange(Exception):
    status_code = 302


class TestStatus:

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (OriginDeniedError("https://evil.example"), 403),
            (MalformedBodyError(), 400),
            (PayloadTooLargeError(1024), 413),
            (DatabaseError(), 500),
            (SessionStoreError("save"), 500),
            (SessionStoreTimeoutError("save", 5.0), 503),
            (HTTPException(status_code=401), 401),
            (StatusAttribute(), 409),
            (OutOfRange(), 500),
            (ValueError("plain"), 500),
        ],
    )
    def test_error_status(self, exc, expected):
        assert error_status(exc) == expected


class TestMessage:

    def test_gateway_error_message(self):
        assert error_message(SessionStoreError("load")) == "Session storage is unavailable."

    def test_denied_origin_not_in_message(self):
        exc = OriginDeniedError("https://evil.example")
        assert "evil" not in error_message(exc)
        assert exc.context == {"origin": "https://evil.example"}

    def test_http_exception_detail(self):
        assert error_message(HTTPException(status_code=403, detail="Nope")) == "Nope"

    def test_plain_exception(self):
        assert error_message(RuntimeError("boom")) == "boom"

    def test_empty_message_defaults(self):
        assert error_message(RuntimeError()) == "Server Error"


class TestEnvelope:

    def _raised(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            return exc

    def test_with_stack(self):
        envelope = error_envelope(self._raised(), include_stack=True)
        assert envelope["ok"] is False
        assert envelope["message"] == "boom"
        assert "Traceback" in envelope["stack"]

    def test_without_stack(self):
        envelope = error_envelope(self._raised(), include_stack=False)
        assert envelope == {"ok": False, "message": "boom"}

    def test_not_found(self):
        response = not_found_response()
        assert response.status_code == 404
        assert response.body == b'{"ok":false,"message":"Not Found"}'


class TestBodyParsing:

    def test_empty_body(self):
        assert parse_json_body(b"") == {}
        assert parse_json_body(b"   ") == {}

    def test_object_and_array(self):
        assert parse_json_body(b'{"a": 1}') == {"a": 1}
        assert parse_json_body(b"[1, 2]") == [1, 2]

    @pytest.mark.parametrize("raw", [b"42", b'"text"', b"null", b"true"])
    def test_scalars_rejected(self, raw):
        with pytest.raises(MalformedBodyError):
            parse_json_body(raw)

    def test_invalid_json(self):
        with pytest.raises(MalformedBodyError) as exc_info:
            parse_json_body(b'{"a": }')
        assert "position" in exc_info.value.message

    def test_invalid_utf8(self):
        with pytest.raises(MalformedBodyError):
            parse_json_body(b'{"a": "\xff"}')
