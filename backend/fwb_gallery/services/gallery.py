from __future__ import annotations
import base64
import binascii
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz
from sqlalchemy import select, func, and_, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.config import settings
from fwb_gallery.errors import InvalidCursor
from fwb_gallery.models.submission import Submission, STATUS_APPROVED
from fwb_gallery.models.vote import Vote

# Gallery navigation is read-only: no locks, every call re-reads storage.


@dataclass
class GalleryPageResult:
    photos: list[Submission]
    next_cursor: str | None
    has_more: bool


@dataclass(frozen=True)
class Progress:
    rated: int
    total: int


def _visible():
    return and_(
        Submission.status == STATUS_APPROVED,
        Submission.file_path.is_not(None),
        Submission.thumbnail_path.is_not(None),
    )


def _utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return ts.replace(tzinfo=dt_tz.utc) if ts.tzinfo is None else ts.astimezone(dt_tz.utc)


def _after(submitted_at: datetime, sid: uuid.UUID):
    return or_(
        Submission.submitted_at > submitted_at,
        and_(Submission.submitted_at == submitted_at, Submission.id > sid),
    )


def _before(submitted_at: datetime, sid: uuid.UUID):
    return or_(
        Submission.submitted_at < submitted_at,
        and_(Submission.submitted_at == submitted_at, Submission.id < sid),
    )


def _voted_by(visitor_token: str | None):
    return exists().where(Vote.submission_id == Submission.id, Vote.visitor_token == visitor_token)


_ASC = (Submission.submitted_at.asc(), Submission.id.asc())
_DESC = (Submission.submitted_at.desc(), Submission.id.desc())


# ---------- cursor ----------

def encode_cursor(submission: Submission) -> str:
    payload = {"submitted_at": _utc(submission.submitted_at).isoformat(), "id": str(submission.id)}
    raw = json.dumps(payload, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, uuid.UUID]:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        return _utc(datetime.fromisoformat(payload["submitted_at"])), uuid.UUID(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as exc:
        raise InvalidCursor("Malformed gallery cursor") from exc


# ---------- listing ----------

async def list_page(session: AsyncSession, cursor: str | None = None, page_size: int | None = None) -> GalleryPageResult:
    """Visible photos strictly after ``cursor`` in (submitted_at, id) order."""
    page_size = page_size or settings.gallery_page_size
    q = select(Submission).where(_visible())
    if cursor:
        q = q.where(_after(*decode_cursor(cursor)))
    # one extra row tells whether another page exists
    rows = list((await session.execute(q.order_by(*_ASC).limit(page_size + 1))).scalars().all())
    has_more = len(rows) > page_size
    photos = rows[:page_size]
    next_cursor = encode_cursor(photos[-1]) if has_more else None
    return GalleryPageResult(photos=photos, next_cursor=next_cursor, has_more=has_more)


# ---------- navigation ----------

async def next_unrated_for(session: AsyncSession, current: Submission, visitor_token: str | None) -> Submission | None:
    """
    First later photo the visitor has not voted on; failing that, the
    immediate successor regardless of votes. None only past the last photo.
    """
    after = _after(current.submitted_at, current.id)
    unrated = await session.scalar(
        select(Submission).where(_visible(), after, ~_voted_by(visitor_token)).order_by(*_ASC).limit(1)
    )
    if unrated is not None:
        return unrated
    return await session.scalar(select(Submission).where(_visible(), after).order_by(*_ASC).limit(1))


async def previous_rated_for(session: AsyncSession, current: Submission, visitor_token: str | None) -> Submission | None:
    """Mirror of next_unrated_for walking backwards and preferring rated photos."""
    before = _before(current.submitted_at, current.id)
    rated = await session.scalar(
        select(Submission).where(_visible(), before, _voted_by(visitor_token)).order_by(*_DESC).limit(1)
    )
    if rated is not None:
        return rated
    return await session.scalar(select(Submission).where(_visible(), before).order_by(*_DESC).limit(1))


async def entry_photo_for(session: AsyncSession, visitor_token: str | None) -> Submission | None:
    """Where a visitor lands: first unrated photo, else the first photo."""
    first_unrated = await session.scalar(
        select(Submission).where(_visible(), ~_voted_by(visitor_token)).order_by(*_ASC).limit(1)
    )
    if first_unrated is not None:
        return first_unrated
    return await session.scalar(select(Submission).where(_visible()).order_by(*_ASC).limit(1))


async def progress_for(session: AsyncSession, visitor_token: str | None) -> Progress:
    total = await session.scalar(select(func.count()).select_from(Submission).where(_visible())) or 0
    rated = 0
    if visitor_token:
        rated = await session.scalar(
            select(func.count(func.distinct(Vote.submission_id)))
            .select_from(Vote)
            .join(Submission, Submission.id == Vote.submission_id)
            .where(Vote.visitor_token == visitor_token, _visible())
        ) or 0
    return Progress(rated=int(rated), total=int(total))


async def get_approved(session: AsyncSession, submission_id: uuid.UUID) -> Submission | None:
    submission = await session.get(Submission, submission_id, populate_existing=True)
    if submission is None or not submission.is_approved():
        return None
    return submission
