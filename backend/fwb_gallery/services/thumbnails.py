from __future__ import annotations
from functools import lru_cache
from typing import Protocol
import structlog
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.config import settings
from fwb_gallery.models.submission import Submission, STATUS_APPROVED

log = structlog.get_logger()


class ThumbnailDispatcher(Protocol):
    def dispatch(self, submission: Submission) -> None: ...


class QueueThumbnailDispatcher:
    """
    Hands thumbnail generation to the image worker over an RQ queue. The job
    is addressed by dotted path; the worker calls back with the finished
    thumbnail path (see POST /submissions/{id}/thumbnail).
    """

    def __init__(self, queue: Queue):
        self.queue = queue

    def dispatch(self, submission: Submission) -> None:
        self.queue.enqueue(
            settings.thumbnail_job,
            str(submission.id),
            submission.file_path,
            job_timeout=120,
        )


@lru_cache
def get_thumbnail_dispatcher() -> ThumbnailDispatcher:
    return QueueThumbnailDispatcher(Queue(settings.thumbnail_queue, connection=Redis.from_url(settings.redis_url)))


def hand_off(dispatcher: ThumbnailDispatcher | None, submission: Submission, reason: str) -> bool:
    """
    Enqueue (re)generation after the submission is committed. Delivery is
    best effort: the record stays valid without a thumbnail, it is only
    hidden from the gallery until the worker calls back.
    """
    if dispatcher is None or not submission.file_path:
        return False
    try:
        dispatcher.dispatch(submission)
    except RedisError as exc:
        log.warning("thumbnail_enqueue_failed", submission_id=str(submission.id), reason=reason, error=str(exc))
        return False
    log.info("thumbnail_enqueued", submission_id=str(submission.id), reason=reason)
    return True


async def redispatch_missing_thumbnails(
    session: AsyncSession, dispatcher: ThumbnailDispatcher, regenerate_all: bool = False
) -> list[Submission]:
    """
    Re-send thumbnail jobs for approved submissions, by default only those
    still lacking a thumbnail. Returns the submissions that were enqueued.
    Recovers photos left hidden by a queue outage during intake or approval.
    """
    q = select(Submission).where(Submission.status == STATUS_APPROVED, Submission.file_path.is_not(None))
    if not regenerate_all:
        q = q.where(Submission.thumbnail_path.is_(None))
    candidates = (await session.execute(q.order_by(Submission.submitted_at, Submission.id))).scalars().all()
    sent = [s for s in candidates if hand_off(dispatcher, s, reason="redispatch")]
    log.info("thumbnails_redispatched", candidates=len(candidates), enqueued=len(sent), regenerate_all=regenerate_all)
    return sent
