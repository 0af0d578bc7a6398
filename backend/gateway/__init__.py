"""
Board Gateway — Application Package
====================================

HTTP entry point of the Time Attack bulletin board: origin admission,
security headers, server-side sessions backed by a relational table, and
dispatch to the auth, posts and comments handlers.

    ┌─────────────────────────────────────┐
    │     Routes & Dispatch (API Layer)   │  ← built-in endpoints, collaborators
    ├─────────────────────────────────────┤
    │        Middleware (Pipeline)        │  ← origin, headers, body, session
    ├─────────────────────────────────────┤
    │      Sessions (Lifecycle/Store)     │  ← open/commit, SessionStore
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy engine
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
