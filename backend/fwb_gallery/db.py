from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from fwb_gallery.config import settings

class Base(DeclarativeBase):
    pass

engine = create_async_engine(settings.database_url, future=True, echo=False)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session

@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Explicit unit of work. Lookups made earlier in the request (e.g. the
    current user) autobegin a read transaction; it is closed first so the
    block below owns a fresh one and commits or rolls back as a whole.

    The session must not carry unflushed changes: they would be committed
    outside the block and survive its rollback. Such a session raises
    RuntimeError and nothing is written.
    """
    if session.new or session.dirty or session.deleted:
        raise RuntimeError("transaction() needs a session without pending changes")
    if session.in_transaction():
        await session.commit()
    async with session.begin():
        yield session
