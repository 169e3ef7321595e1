from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select, func, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.config import settings
from fwb_gallery.db import transaction
from fwb_gallery.errors import NotFound, SlotsExhausted, ConstraintViolation
from fwb_gallery.models.submission import Submission, ACTIVE_STATUSES, STATUS_NEW
from fwb_gallery.services.identifiers import next_public_id
from fwb_gallery.services.locks import locked_transaction, public_id_lock_key
from fwb_gallery.services.thumbnails import ThumbnailDispatcher, hand_off

log = structlog.get_logger()


@dataclass(frozen=True)
class Submitter:
    """A registered account or an anonymous visitor token, never both."""
    user_id: UUID | None = None
    visitor_token: str | None = None

    def __post_init__(self):
        if (self.user_id is None) == (self.visitor_token is None):
            raise ValueError("Submitter needs exactly one of user_id or visitor_token")

    @classmethod
    def account(cls, user_id: UUID) -> "Submitter":
        return cls(user_id=user_id)

    @classmethod
    def visitor(cls, token: str) -> "Submitter":
        return cls(visitor_token=token)

    def clause(self):
        if self.user_id is not None:
            return Submission.user_id == self.user_id
        return Submission.visitor_token == self.visitor_token


@dataclass(frozen=True)
class FileRef:
    """Stored upload as reported by the storage collaborator."""
    file_path: str
    original_filename: str | None = None
    mime_type: str | None = None
    file_size: int | None = None
    file_hash: str | None = None


@dataclass(frozen=True)
class Photographer:
    name: str | None = None
    email: str | None = None


@dataclass
class IntakeResult:
    submission: Submission
    duplicate: bool
    remaining_slots: int


# ---------- slot accounting (derived, never stored) ----------

async def active_submission_count(session: AsyncSession, submitter: Submitter) -> int:
    total = await session.scalar(
        select(func.count()).select_from(Submission)
        .where(submitter.clause(), Submission.status.in_(ACTIVE_STATUSES))
    )
    return int(total or 0)


async def remaining_slots(session: AsyncSession, submitter: Submitter) -> int:
    return max(0, settings.max_active_submissions - await active_submission_count(session, submitter))


async def submissions_for(session: AsyncSession, submitter: Submitter, limit: int = 20, offset: int = 0) -> list[Submission]:
    return list((await session.execute(
        select(Submission).where(submitter.clause())
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(limit).offset(offset)
    )).scalars().all())


# ---------- intake ----------

async def create_submission(
    session: AsyncSession,
    submitter: Submitter,
    file_ref: FileRef,
    photographer: Photographer | None = None,
    thumbnails: ThumbnailDispatcher | None = None,
    now: datetime | None = None,
) -> IntakeResult:
    """
    Persist a new submission with status ``new`` and a fresh public id.

    The year lock spans the slot check, the id lookup and the insert, so
    concurrent intakes can neither share a public id nor overrun a
    submitter's slots. ContentionTimeout is retryable; nothing is stored.
    """
    now = now or datetime.now(dt_tz.utc)
    photographer = photographer or Photographer()

    async with locked_transaction(session, public_id_lock_key(now.year)):
        if await remaining_slots(session, submitter) <= 0:
            raise SlotsExhausted(f"Maximum of {settings.max_active_submissions} active submissions reached")

        duplicate = False
        if file_ref.file_hash:
            duplicate = bool(await session.scalar(
                select(exists().where(submitter.clause(), Submission.file_hash == file_ref.file_hash))
            ))

        submission = Submission(
            public_id=await next_public_id(session, now.year),
            user_id=submitter.user_id,
            visitor_token=submitter.visitor_token,
            original_filename=file_ref.original_filename,
            file_path=file_ref.file_path,
            file_size=file_ref.file_size,
            file_hash=file_ref.file_hash,
            mime_type=file_ref.mime_type,
            photographer_name=photographer.name,
            photographer_email=photographer.email,
            status=STATUS_NEW,
            rate=0,
            submitted_at=now,
        )
        session.add(submission)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConstraintViolation(f"Could not store submission {submission.public_id}") from exc
        left = await remaining_slots(session, submitter)

    log.info(
        "submission_created",
        submission_id=str(submission.id),
        public_id=submission.public_id,
        public=submission.is_public_submission(),
        duplicate=duplicate,
    )
    hand_off(thumbnails, submission, reason="intake")
    return IntakeResult(submission=submission, duplicate=duplicate, remaining_slots=left)


async def attach_thumbnail(session: AsyncSession, submission_id: UUID, thumbnail_path: str) -> Submission:
    """Callback from the image worker once a thumbnail exists."""
    async with transaction(session):
        submission = await session.get(Submission, submission_id, populate_existing=True)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")
        submission.thumbnail_path = thumbnail_path
    log.info("thumbnail_attached", submission_id=str(submission_id))
    return submission
