"""
Board Gateway — Request Context Tests
======================================

What we test:
    ✅ Forwarded headers are ignored without proxy trust
    ✅ With one trusted hop: first X-Forwarded-Proto, right-most X-Forwarded-For
    ✅ with_prefix() re-roots the path under a mount point
"""

from starlette.requests import Request

from gateway.context import RequestContext, resolve_client_ip, resolve_scheme


def make_request(path="/", headers=None, scheme="http", client=("10.0.0.1", 5000)):
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": raw_headers,
        "scheme": scheme,
        "server": ("test", 80),
        "client": client,
    }
    return Request(scope)


class TestScheme:

    def test_forwarded_proto_ignored_without_trust(self):
        request = make_request(headers={"X-Forwarded-Proto": "https"})
        assert resolve_scheme(request, trusted_hops=0) == "http"

    def test_forwarded_proto_used_with_trust(self):
        request = make_request(headers={"X-Forwarded-Proto": "HTTPS, http"})
        assert resolve_scheme(request, trusted_hops=1) == "https"

    def test_falls_back_to_connection_scheme(self):
        request = make_request(scheme="https")
        assert resolve_scheme(request, trusted_hops=1) == "https"


class TestClientIp:

    def test_peer_address_without_trust(self):
        request = make_request(headers={"X-Forwarded-For": "1.2.3.4"})
        assert resolve_client_ip(request, trusted_hops=0) == "10.0.0.1"

    def test_rightmost_forwarded_entry_with_one_hop(self):
        # The left entries are whatever the client claimed.
        request = make_request(headers={"X-Forwarded-For": "6.6.6.6, 203.0.113.9"})
        assert resolve_client_ip(request, trusted_hops=1) == "203.0.113.9"

    def test_missing_client(self):
        request = make_request(client=None)
        assert resolve_client_ip(request, trusted_hops=0) == "unknown"


class TestRequestContext:

    def test_from_request(self):
        request = make_request(
            path="/api/posts/1",
            headers={"Origin": "http://localhost:5173", "Host": "board.example"},
        )
        ctx = RequestContext.from_request(request, trusted_hops=0)
        assert ctx.method == "GET"
        assert ctx.path == ctx.subpath == "/api/posts/1"
        assert ctx.origin == "http://localhost:5173"
        assert ctx.host == "board.example"
        assert ctx.body is None
        assert ctx.session is None

    def test_with_prefix(self):
        ctx = RequestContext.from_request(make_request(path="/api/posts/1/comments"), 0)
        assert ctx.with_prefix("/api/posts").subpath == "/1/comments"
        assert ctx.with_prefix("/api").subpath == "/posts/1/comments"
        assert ctx.subpath == "/api/posts/1/comments"

    def test_with_prefix_on_mount_root(self):
        ctx = RequestContext.from_request(make_request(path="/auth"), 0)
        assert ctx.with_prefix("/auth").subpath == "/"
