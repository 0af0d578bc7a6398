"""
Board Gateway — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Every HTTP test needs the same thing: a gateway wired to an in-memory
       SQLite session store and a few fake collaborators.
How:   Each test gets its own engine (so its own empty database), built
       through the real create_app() factory.

Fixture Hierarchy (all function-scoped):
    ├── make_settings: Settings builder pointing at in-memory SQLite
    ├── collaborators: fresh fake auth / posts / comments handlers
    ├── app_factory:   async builder for configured apps (disposes engines)
    ├── app:           default app (development mode, fakes mounted)
    ├── client:        HTTPX AsyncClient bound to `app`
    └── store:         standalone SessionStore with its table provisioned
"""

import os

# Must be set before gateway.main is imported: it builds a module-level app.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["NODE_ENV"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient

from gateway.config import Settings
from gateway.context import RequestContext
from gateway.database import build_engine
from gateway.main import create_app
from gateway.sessions.store import SessionStore

NETLIFY_ORIGIN = "https://timeattack01.netlify.app"
MEMORY_DB = "sqlite+aiosqlite:///:memory:"


# ══════════════════════════════════════════════════════════════════════════
# Fake Collaborators
# ══════════════════════════════════════════════════════════════════════════

class TeapotError(Exception):
    """Collaborator-specific error declaring its own status."""

    status = 418


class FakeAuthHandler:
    """Minimal stand-in for the auth routes: binds identities into the session."""

    def __init__(self):
        self.calls: List[RequestContext] = []

    async def handle(self, ctx: RequestContext):
        self.calls.append(ctx)
        route = (ctx.method, ctx.subpath)

        if route == ("POST", "/login"):
            ctx.session.login(ctx.body["userId"])
            return {"ok": True}
        if route == ("POST", "/login-fresh"):
            ctx.session.regenerate()
            ctx.session.login(ctx.body["userId"])
            return {"ok": True}
        if route == ("POST", "/logout"):
            ctx.session.destroy()
            return {"ok": True}
        if route == ("GET", "/me"):
            return {"ok": True, "userId": ctx.session.user_id}
        if route == ("POST", "/touch"):
            ctx.session.touch()
            return {"ok": True}
        if route == ("POST", "/prefs"):
            ctx.session.set("theme", ctx.body.get("theme"))
            return {"ok": True}
        if route == ("GET", "/teapot"):
            raise TeapotError("I'm a teapot")
        if route == ("GET", "/crash"):
            raise RuntimeError("kaboom")
        if route == ("POST", "/login-crash"):
            ctx.session.login(ctx.body["userId"])
            raise RuntimeError("audit log unavailable")
        if route == ("GET", "/forbidden"):
            raise HTTPException(status_code=403, detail="Login required")
        return None


class FakePostsHandler:
    """Answers /api/posts itself and declines nested comment paths."""

    def __init__(self):
        self.calls: List[RequestContext] = []

    async def handle(self, ctx: RequestContext):
        self.calls.append(ctx)
        if "/comments" in ctx.subpath:
            return None
        if ctx.subpath == "/" and ctx.method == "GET":
            return {"ok": True, "posts": []}
        if ctx.subpath == "/" and ctx.method == "POST":
            return {"ok": True, "post": ctx.body}
        return None


class FakeCommentsHandler:

    def __init__(self):
        self.calls: List[RequestContext] = []

    async def handle(self, ctx: RequestContext):
        self.calls.append(ctx)
        parts = ctx.subpath.strip("/").split("/")
        if len(parts) == 3 and parts[0] == "posts" and parts[2] == "comments":
            return {"ok": True, "postId": parts[1], "comments": []}
        return None


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def session_cookie(response) -> Optional[str]:
    """The `sid` value from a response's Set-Cookie headers, if any."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name.strip() == "sid":
            return rest.split(";")[0]
    return None


def set_cookie_header(response) -> str:
    for header in response.headers.get_list("set-cookie"):
        if header.startswith("sid="):
            return header
    return ""


def cookie_header(value: str) -> Dict[str, str]:
    return {"Cookie": f"sid={value}"}


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_settings():
    """Build Settings for tests; keyword arguments override defaults."""

    def factory(**overrides: Any) -> Settings:
        values = {"database_url": MEMORY_DB, "node_env": "development"}
        values.update(overrides)
        return Settings(**values)

    return factory


@pytest.fixture
def collaborators():
    return {
        "auth": FakeAuthHandler(),
        "posts": FakePostsHandler(),
        "comments": FakeCommentsHandler(),
    }


@pytest_asyncio.fixture
async def app_factory(make_settings, collaborators):
    """
    Async builder for gateway apps.

    The sessions table is provisioned here because httpx's ASGITransport
    does not run the lifespan.
    """
    engines = []

    async def factory(collaborators_override=None, **overrides):
        settings = make_settings(**overrides)
        engine = build_engine(settings)
        engines.append(engine)
        app = create_app(
            settings,
            collaborators=collaborators if collaborators_override is None else collaborators_override,
            engine=engine,
        )
        await app.state.session_store.ensure_table()
        return app

    yield factory

    for engine in engines:
        await engine.dispose()


@pytest_asyncio.fixture
async def app(app_factory):
    return await app_factory()


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient talking to `app` in-process.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def store(make_settings):
    settings = make_settings()
    engine = build_engine(settings)
    session_store = SessionStore(engine, max_age=settings.session_max_age, timeout=2.0)
    await session_store.ensure_table()
    yield session_store
    await engine.dispose()
