"""
Board Gateway — FastAPI Application Factory
============================================

What:  Creates and configures the HTTP entry point of the bulletin board.
Why:   Centralizes middleware ordering, session wiring, route mounting and
       lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn gateway.main:app) or `gateway-serve`.
When:  Once at server startup; the returned app handles all requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Pipeline (outermost first):                             │
    │  Request ID → Access Log → Security Headers →            │
    │  Error Terminal → Origin Policy → JSON Body → Session    │
    │                                                          │
    │  Routes:                                                 │
    │  GET /health   GET /   GET /docs   GET /openapi.json     │
    │  /auth/*  → auth      /api/posts/* → posts               │
    │  /api/*   → comments  anything else → 404 envelope       │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Log configuration warnings
    3. Provision the sessions table (fatal on failure)
    4. Start the expired-session sweeper

    Shutdown:
    1. Cancel the sweeper
    2. Dispose the database engine
"""

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

import uvicorn
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from gateway import __version__
from gateway.config import Settings
from gateway.cors import OriginPolicy
from gateway.database import build_engine, dispose_engine
from gateway.dispatch import Collaborator, build_dispatch_table
from gateway.fallback import register_exception_handlers
from gateway.middleware.body import JSONBodyMiddleware
from gateway.middleware.cors import OriginPolicyMiddleware
from gateway.middleware.errors import ErrorTerminalMiddleware
from gateway.middleware.logging import RequestLoggingMiddleware
from gateway.middleware.request_id import RequestIDFilter, RequestIDMiddleware
from gateway.middleware.security import SecurityHeadersMiddleware
from gateway.middleware.session import SessionMiddleware
from gateway.routes import dispatch, docs, health
from gateway.sessions.manager import SessionManager
from gateway.sessions.store import SessionStore, sweep_expired_sessions

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    The request id comes from RequestIDFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)  # container runtimes capture stdout
    handler.addFilter(RequestIDFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    store: SessionStore = app.state.session_store

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("Gateway starting (env=%s, version=%s)", settings.node_env, __version__)
    for warning in settings.startup_warnings():
        logger.warning("Configuration: %s", warning)
    logger.info("Allowed origins: %s", ", ".join(sorted(settings.allowed_origins)))

    # No per-request recovery exists for a missing table; refuse to start.
    try:
        await store.ensure_table()
    except Exception:
        logger.critical("Could not provision the session table; aborting startup", exc_info=True)
        raise

    sweeper: Optional[asyncio.Task] = None
    if settings.session_sweep_interval:
        sweeper = asyncio.create_task(
            sweep_expired_sessions(store, settings.session_sweep_interval),
            name="session-sweeper",
        )

    logger.info("Server ready at http://%s:%d (docs at /docs)", settings.host, settings.port)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Gateway shutting down...")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    *,
    collaborators: Optional[Dict[str, Collaborator]] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    """
    Assemble the gateway.

    Args:
        settings:      Immutable configuration; read from the environment
                       when omitted.
        collaborators: {"auth"|"posts"|"comments": handler}; overrides the
                       *_HANDLER import paths.
        engine:        Pre-built async engine (tests share one); built from
                       DATABASE_URL when omitted.
    """
    settings = settings or Settings()
    engine = engine or build_engine(settings)
    store = SessionStore(
        engine,
        max_age=settings.session_max_age,
        timeout=settings.session_store_timeout,
    )

    app = FastAPI(
        title="Time Attack BBS",
        description="HTTP gateway of the Time Attack bulletin board.",
        version=__version__,
        # /docs and /openapi.json are served by routes.docs
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_store = store
    app.state.dispatch_table = build_dispatch_table(settings, collaborators)

    # ── Register Middleware ───────────────────────────────────────────────
    # Starlette runs middleware in REVERSE order of addition (last added =
    # outermost). Added innermost-first to read like the chain it builds:
    # Request ID → Access Log → Security Headers → Error Terminal →
    # Origin Policy → JSON Body → Session → route
    session_manager = SessionManager(store, settings)
    app.add_middleware(SessionMiddleware, manager=session_manager)
    app.add_middleware(JSONBodyMiddleware, limit=settings.json_body_limit)
    app.add_middleware(OriginPolicyMiddleware, policy=OriginPolicy(settings.allowed_origins))
    app.add_middleware(ErrorTerminalMiddleware, settings=settings, manager=session_manager)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware, trusted_hops=settings.trust_proxy_hops)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(docs.router)
    app.include_router(dispatch.router)  # catch-all, must stay last

    return app


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        proxy_headers=False,  # forwarded headers are interpreted by the gateway itself
        log_config=None,
    )


# uvicorn expects `gateway.main:app` to be importable.
app = create_app()
