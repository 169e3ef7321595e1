from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone as dt_tz
from uuid import UUID
import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.db import transaction
from fwb_gallery.errors import NotFound
from fwb_gallery.models.audit import AuditAction, AuditEntry
from fwb_gallery.models.submission import Submission, STATUSES
from fwb_gallery.models.user import User
from fwb_gallery.services.audit import append_entry
from fwb_gallery.services.thumbnails import ThumbnailDispatcher, hand_off

log = structlog.get_logger()


@dataclass
class ReviewOutcome:
    submission: Submission
    entry: AuditEntry


def _iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt_tz.utc)
    return ts.isoformat()


async def review_submission(
    session: AsyncSession,
    submission_id: UUID,
    reviewer: User,
    action: AuditAction,
    source_address: str | None = None,
    thumbnails: ThumbnailDispatcher | None = None,
) -> ReviewOutcome:
    """
    Move a submission to approved/declined and record the decision.

    Allowed from any status, including re-reviews. No lock is taken across
    competing reviewers: the last committed write decides the final status,
    and every call leaves its own audit entry. The status change and the
    audit row commit together or not at all.
    """
    action = AuditAction(action)
    async with transaction(session):
        submission = await session.get(Submission, submission_id, populate_existing=True)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")

        previous_reviewer = None
        if submission.reviewed_by is not None:
            previous_reviewer = await session.scalar(select(User.name).where(User.id == submission.reviewed_by))
        changes = {
            "from": submission.status,
            "to": action.value,
            "previous_reviewer": previous_reviewer,
            "previous_reviewed_at": _iso(submission.reviewed_at),
        }

        submission.status = action.value
        submission.reviewed_by = reviewer.id
        submission.reviewed_at = datetime.now(dt_tz.utc)
        await session.flush()

        entry = await append_entry(session, submission, action, reviewer, changes, source_address)

    log.info(
        "submission_reviewed",
        submission_id=str(submission.id),
        public_id=submission.public_id,
        action=action.value,
        previous_status=changes["from"],
        reviewer_id=str(reviewer.id),
    )
    if action is AuditAction.APPROVED:
        hand_off(thumbnails, submission, reason="approved")
    return ReviewOutcome(submission=submission, entry=entry)


async def approve(session: AsyncSession, submission_id: UUID, reviewer: User, source_address: str | None = None,
                  thumbnails: ThumbnailDispatcher | None = None) -> ReviewOutcome:
    return await review_submission(session, submission_id, reviewer, AuditAction.APPROVED, source_address, thumbnails)


async def decline(session: AsyncSession, submission_id: UUID, reviewer: User, source_address: str | None = None,
                  thumbnails: ThumbnailDispatcher | None = None) -> ReviewOutcome:
    return await review_submission(session, submission_id, reviewer, AuditAction.DECLINED, source_address, thumbnails)


# ---------- moderator dashboard ----------

async def status_counts(session: AsyncSession) -> dict[str, int]:
    rows = (await session.execute(
        select(Submission.status, func.count()).group_by(Submission.status)
    )).all()
    counts = {status: 0 for status in STATUSES}
    for status, cnt in rows:
        counts[status] = int(cnt)
    return {"all": sum(counts.values()), **counts}


async def list_for_review(
    session: AsyncSession, status: str | None = None, limit: int = 15, offset: int = 0
) -> list[Submission]:
    q = select(Submission)
    if status:
        q = q.where(Submission.status == status)
    q = q.order_by(Submission.submitted_at.desc(), Submission.id.desc()).limit(limit).offset(offset)
    return list((await session.execute(q)).scalars().all())
