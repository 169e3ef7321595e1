from __future__ import annotations
import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID
import structlog
from sqlalchemy import select, func, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.config import settings
from fwb_gallery.db import transaction
from fwb_gallery.errors import ContentionTimeout

log = structlog.get_logger()

LOCK_NOT_AVAILABLE = "55P03"

# Per-key locks for databases without advisory locks (SQLite). Entries vanish
# once no coroutine holds or waits on them.
_local_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def public_id_lock_key(year: int) -> str:
    return f"public-id:{settings.public_id_prefix}-{year}"


def vote_lock_key(submission_id: UUID | str) -> str:
    return f"submission-vote:{submission_id}"


def _is_lock_timeout(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == LOCK_NOT_AVAILABLE


def _local_lock(key: str) -> asyncio.Lock:
    lock = _local_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _local_locks[key] = lock
    return lock


@asynccontextmanager
async def locked_transaction(
    session: AsyncSession, key: str, timeout: float | None = None
) -> AsyncIterator[AsyncSession]:
    """
    Open a transaction holding an exclusive lock scoped to ``key``.

    The lock is held until the transaction commits or rolls back, so reads
    and writes made inside the block are serialized against every other
    holder of the same key. Different keys never wait on each other.
    Waiting longer than ``timeout`` raises ContentionTimeout.
    """
    timeout = settings.lock_timeout_seconds if timeout is None else timeout

    if session.get_bind().dialect.name == "postgresql":
        try:
            async with transaction(session):
                await session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout * 1000)}ms'"))
                await session.execute(select(func.pg_advisory_xact_lock(func.hashtextextended(key, 0))))
                yield session
        except DBAPIError as exc:
            if _is_lock_timeout(exc):
                log.warning("lock_timeout", key=key, timeout=timeout)
                raise ContentionTimeout(key, timeout) from exc
            raise
        return

    lock = _local_lock(key)
    try:
        await asyncio.wait_for(lock.acquire(), timeout)
    except asyncio.TimeoutError as exc:
        log.warning("lock_timeout", key=key, timeout=timeout)
        raise ContentionTimeout(key, timeout) from exc
    try:
        async with transaction(session):
            yield session
    finally:
        lock.release()
