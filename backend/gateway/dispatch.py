"""
Board Gateway — Collaborator Dispatch Table
============================================

What:  Maps path prefixes to the mounted feature handlers (auth, posts,
       comments) and delegates matching requests to them.
Why:   The gateway owns admission, sessions and error rendering; the feature
       handlers own everything else, including authorization. They only need
       one capability: `handle(RequestContext)`.

Matching:
    Entries are tried in registration order. A prefix matches the path
    itself ("/auth") or anything below it ("/auth/login"), never a mere
    string prefix ("/authors"). A collaborator that returns None declines
    the request and the next matching entry is tried, which is how
    "/api/posts/7/comments" can reach the comments handler mounted at
    "/api" after the posts handler passes on it.

Default table:
    /auth       → auth
    /api/posts  → posts
    /api        → comments
"""

import importlib
import inspect
import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from starlette.responses import JSONResponse, Response

from gateway.config import Settings
from gateway.context import RequestContext
from gateway.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

HandlerResult = Union[Response, Dict[str, Any], List[Any], None]

# (prefix, settings attribute holding the import path, display name)
MOUNT_POINTS: Sequence[Tuple[str, str, str]] = (
    ("/auth", "auth_handler", "auth"),
    ("/api/posts", "posts_handler", "posts"),
    ("/api", "comments_handler", "comments"),
)


@runtime_checkable
class Collaborator(Protocol):
    """A mounted feature handler."""

    async def handle(self, ctx: RequestContext) -> HandlerResult:
        ...


def prefix_matches(prefix: str, path: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


class DispatchTable:

    def __init__(self, entries: Sequence[Tuple[str, Collaborator]] = ()):
        self._entries: List[Tuple[str, Collaborator]] = []
        for prefix, collaborator in entries:
            self.mount(prefix, collaborator)

    def mount(self, prefix: str, collaborator: Collaborator) -> None:
        if not prefix.startswith("/"):
            raise ConfigurationError(f"Mount prefix must start with '/': {prefix!r}")
        if not isinstance(collaborator, Collaborator):
            raise ConfigurationError(
                f"Collaborator for {prefix} has no async handle(ctx) method: {collaborator!r}"
            )
        self._entries.append((prefix.rstrip("/") or "/", collaborator))

    @property
    def prefixes(self) -> List[str]:
        return [prefix for prefix, _ in self._entries]

    def candidates(self, path: str) -> Iterator[Tuple[str, Collaborator]]:
        for prefix, collaborator in self._entries:
            if prefix_matches(prefix, path):
                yield prefix, collaborator

    async def dispatch(self, ctx: RequestContext) -> Optional[Response]:
        """Run the first collaborator that accepts the request; None if none does."""
        for prefix, collaborator in self.candidates(ctx.path):
            result = await collaborator.handle(ctx.with_prefix(prefix))
            if result is None:
                continue
            if isinstance(result, Response):
                return result
            return JSONResponse(result)
        return None


def load_collaborator(path: str) -> Collaborator:
    """
    Import a collaborator from "package.module:attribute".

    A class is instantiated with no arguments; any other object is used as-is.
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Expected 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attribute)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(
            f"Cannot import collaborator {path!r}: {exc}", context={"path": path}
        ) from exc
    return target() if inspect.isclass(target) else target


def build_dispatch_table(
    settings: Settings,
    collaborators: Optional[Dict[str, Collaborator]] = None,
) -> DispatchTable:
    """
    Assemble the default table.

    `collaborators` (keyed "auth" / "posts" / "comments") wins over the
    import paths in settings. Unconfigured mounts are left out, so their
    paths fall through to Not Found.
    """
    collaborators = collaborators or {}
    table = DispatchTable()
    for prefix, setting_name, name in MOUNT_POINTS:
        collaborator = collaborators.get(name)
        if collaborator is None:
            import_path = getattr(settings, setting_name)
            if not import_path:
                logger.info("No %s handler configured; %s/* will answer 404", name, prefix)
                continue
            collaborator = load_collaborator(import_path)
        table.mount(prefix, collaborator)
    return table
