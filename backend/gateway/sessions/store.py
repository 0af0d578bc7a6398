"""
Board Gateway — Session Store
==============================

What:  Durable session records in the `sessions` table.
Why:   Sessions survive restarts and are shared by every worker that talks to
       the same database.
How:   Async SQLAlchemy over the shared engine. Each operation is a short
       transaction wrapped in a timeout; driver errors surface as
       SessionStoreError so the Fallback Handler renders a 5xx.

Contract:
    load(id)              → SessionRecord | None (missing or expired → None)
    save(record)          → upsert; last write wins
    touch(id, expires_at) → push expiry out without rewriting the payload
    destroy(id)           → delete; deleting a missing id is not an error
    clear_expired(now)    → delete every expired row, return the count
    ensure_table()        → create the table if absent (startup only)

Concurrency:
    Two requests saving the same session race at the row level and the
    later upsert wins. There is no version column and no conflict detection.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from gateway.database import Base, build_session_factory
from gateway.exceptions import SessionStoreError, SessionStoreTimeoutError
from gateway.models.session import SessionRow
from gateway.sessions.session import SessionPayload, SessionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_epoch(moment: datetime) -> int:
    return int(moment.timestamp())


def _from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def serialize_payload(payload: SessionPayload) -> str:
    # sort_keys: an unchanged payload always serializes to the same text
    return json.dumps(payload.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


class SessionStore:
    """Relational session store. One instance per application."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        max_age: int,
        timeout: float = 5.0,
        provision_attempts: int = 3,
    ):
        self._engine = engine
        self._session_factory = build_session_factory(engine)
        self._max_age = timedelta(seconds=max_age)
        self._timeout = timeout
        self._provision_attempts = provision_attempts

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Session store %s timed out after %.1fs", operation, self._timeout)
            raise SessionStoreTimeoutError(operation, self._timeout) from exc
        except SQLAlchemyError as exc:
            raise SessionStoreError(operation, context={"error": str(exc)}) from exc

    # ── Provisioning ──────────────────────────────────────────────────────

    async def _create_table(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[SessionRow.__table__])

    async def ensure_table(self) -> None:
        """
        Create the sessions table if it does not exist.

        Connection failures are retried with backoff (the database may still
        be starting next to us); anything else, or exhausting the attempts,
        raises SessionStoreError and the application refuses to start.
        """
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type((OperationalError, OSError)),
                stop=stop_after_attempt(self._provision_attempts),
                wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._create_table()
        except (SQLAlchemyError, OSError) as exc:
            raise SessionStoreError("ensure_table", context={"error": str(exc)}) from exc
        logger.info("Session table '%s' is ready", SessionRow.__tablename__)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def _load(self, session_id: str, now: datetime) -> Optional[SessionRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(SessionRow).where(SessionRow.session_id == session_id)
            )
            row = result.scalar_one_or_none()

        if row is None or row.expires <= _to_epoch(now):
            return None

        try:
            payload = SessionPayload.model_validate(json.loads(row.data))
        except (ValueError, PydanticValidationError):
            # Unreadable rows behave like missing ones; the sweeper removes them.
            logger.warning("Discarding unreadable session record %s...", session_id[:8])
            return None

        expires_at = _from_epoch(row.expires)
        return SessionRecord(
            id=row.session_id,
            payload=payload,
            expires_at=expires_at,
            touched_at=expires_at - self._max_age,
        )

    async def load(self, session_id: str, now: Optional[datetime] = None) -> Optional[SessionRecord]:
        return await self._guard("load", self._load(session_id, now or utcnow()))

    # ── Writes ────────────────────────────────────────────────────────────

    def _upsert_statement(self, values: dict):
        dialect = self._engine.dialect.name
        if dialect in ("mysql", "mariadb"):
            stmt = mysql.insert(SessionRow).values(**values)
            return stmt.on_duplicate_key_update(
                expires=stmt.inserted.expires,
                data=stmt.inserted.data,
            )
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = insert(SessionRow).values(**values)
            return stmt.on_conflict_do_update(
                index_elements=[SessionRow.session_id],
                set_={"expires": stmt.excluded.expires, "data": stmt.excluded.data},
            )
        return None

    async def _save(self, record: SessionRecord) -> None:
        values = {
            "session_id": record.id,
            "expires": _to_epoch(record.expires_at),
            "data": serialize_payload(record.payload),
        }
        async with self._session_factory() as db:
            stmt = self._upsert_statement(values)
            if stmt is not None:
                await db.execute(stmt)
            else:
                await db.merge(SessionRow(**values))
            await db.commit()

    async def save(self, record: SessionRecord) -> None:
        await self._guard("save", self._save(record))

    async def _touch(self, session_id: str, expires_at: datetime) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(SessionRow)
                .where(SessionRow.session_id == session_id)
                .values(expires=_to_epoch(expires_at))
            )
            await db.commit()

    async def touch(self, session_id: str, expires_at: datetime) -> None:
        await self._guard("touch", self._touch(session_id, expires_at))

    async def _destroy(self, session_id: str) -> None:
        async with self._session_factory() as db:
            await db.execute(delete(SessionRow).where(SessionRow.session_id == session_id))
            await db.commit()

    async def destroy(self, session_id: str) -> None:
        await self._guard("destroy", self._destroy(session_id))

    async def _clear_expired(self, now: datetime) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(SessionRow).where(SessionRow.expires <= _to_epoch(now))
            )
            await db.commit()
        return result.rowcount or 0

    async def clear_expired(self, now: Optional[datetime] = None) -> int:
        return await self._guard("clear_expired", self._clear_expired(now or utcnow()))


async def sweep_expired_sessions(store: SessionStore, interval: float) -> None:
    """
    Background task: delete expired rows every `interval` seconds.

    Runs until cancelled by the lifespan. A failed sweep is logged and the
    loop carries on; reads already ignore expired rows, so a missed sweep
    only costs disk space.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await store.clear_expired()
        except SessionStoreError as exc:
            logger.warning("Expired-session sweep failed: %s | Context: %s", exc.message, exc.context)
            continue
        if removed:
            logger.info("Removed %d expired sessions", removed)
