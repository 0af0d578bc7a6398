"""
Board Gateway — JSON Body Middleware
=====================================

What:  Parses `application/json` request bodies once, before routing.
Why:   A malformed body is the client's fault: it must become a 400
       envelope, not an exception deep inside a collaborator.
How:   Streams the body in chunks, stopping as soon as it passes the limit
       (chunked uploads carry no Content-Length), caches it for the route,
       decodes it strictly and stores the result in request.state.json_body.

Rules:
    other content types      → not parsed, json_body stays None
    empty JSON body          → {}
    top level not obj/array  → 400 (strict mode)
    invalid JSON / not UTF-8 → 400
    larger than the limit    → 413
"""

import json

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gateway.exceptions import MalformedBodyError, PayloadTooLargeError


def is_json_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";")[0].strip().lower() == "application/json"


def parse_json_body(raw: bytes):
    if not raw.strip():
        return {}
    try:
        value = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise MalformedBodyError("Request body is not valid UTF-8") from exc
    except json.JSONDecodeError as exc:
        raise MalformedBodyError(
            f"Malformed JSON request body: {exc.msg} at position {exc.pos}"
        ) from exc
    if not isinstance(value, (dict, list)):
        raise MalformedBodyError("JSON request body must be an object or an array")
    return value


class JSONBodyMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, limit: int):
        super().__init__(app)
        self._limit = limit

    async def _read_limited(self, request: Request) -> bytes:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self._limit:
            raise PayloadTooLargeError(self._limit)

        chunks = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > self._limit:
                raise PayloadTooLargeError(self._limit)
            chunks.append(chunk)
        body = b"".join(chunks)
        # Cached the way Request.body() caches it, so the route reads it again.
        request._body = body
        return body

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.json_body = None
        if is_json_request(request):
            request.state.json_body = parse_json_body(await self._read_limited(request))
        return await call_next(request)
