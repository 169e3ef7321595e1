import os

# Point the app at SQLite before anything imports fwb_gallery.db
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("THUMBNAIL_CALLBACK_TOKEN", "test-callback-token")

import itertools
import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from fwb_gallery.db import Base, get_session
from fwb_gallery.main import app
import fwb_gallery.models.user  # register tables
import fwb_gallery.models.submission
import fwb_gallery.models.vote
import fwb_gallery.models.audit
from fwb_gallery.models.submission import Submission
from fwb_gallery.models.user import User
from fwb_gallery.security import make_access_token
from fwb_gallery.services.thumbnails import get_thumbnail_dispatcher


class RecordingDispatcher:
    """Stands in for the RQ queue; remembers what would have been enqueued."""

    def __init__(self):
        self.dispatched: list[uuid.UUID] = []

    def dispatch(self, submission):
        self.dispatched.append(submission.id)


@pytest_asyncio.fixture
async def engine(tmp_path):
    # file-backed so separate sessions (and concurrent tasks) share data
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def thumbnails():
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def client(session_factory, thumbnails):
    async def _get_session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_thumbnail_dispatcher] = lambda: thumbnails
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    async def _make(name: str = "Reviewer", role: str = "reviewer") -> User:
        user = User(
            email=f"{name.lower().replace(' ', '.')}-{uuid.uuid4().hex[:6]}@example.com",
            name=name,
            password_hash="not-a-real-hash",
            role=role,
        )
        session.add(user)
        await session.commit()
        return user
    return _make


@pytest.fixture
def make_submission(session):
    counter = itertools.count(1)
    base = datetime(2025, 11, 20, 12, 0, tzinfo=timezone.utc)

    async def _make(
        status: str = "approved",
        submitted_at: datetime | None = None,
        rate: int = 0,
        visible: bool = True,
        visitor_token: str | None = None,
        user_id: uuid.UUID | None = None,
    ) -> Submission:
        n = next(counter)
        s = Submission(
            public_id=f"FWB-2025-{n:05d}",
            visitor_token=visitor_token if user_id else (visitor_token or f"visitor-{n}"),
            user_id=user_id,
            file_path=f"uploads/2025/11/{n}.jpg" if visible else None,
            thumbnail_path=f"thumbnails/{n}.jpg" if visible else None,
            status=status,
            rate=rate,
            submitted_at=submitted_at or base + timedelta(minutes=n),
        )
        session.add(s)
        await session.commit()
        return s
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_access_token(str(user.id))}"}
    return _headers
