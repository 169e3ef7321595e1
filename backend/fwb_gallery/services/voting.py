from __future__ import annotations
from dataclasses import dataclass
from uuid import UUID
import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.errors import NotFound, NotVotable, ConstraintViolation
from fwb_gallery.models.submission import Submission
from fwb_gallery.models.vote import Vote
from fwb_gallery.services.locks import locked_transaction, vote_lock_key

log = structlog.get_logger()

VOTE_TYPES = {"up": True, "down": False}


@dataclass(frozen=True)
class VoteOutcome:
    rate: int
    delta: int
    vote_type: bool
    created: bool  # False when an existing vote was overwritten

    @property
    def label(self) -> str:
        return "up" if self.vote_type else "down"


def parse_vote_type(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    try:
        return VOTE_TYPES[value]
    except KeyError:
        raise ValueError(f"vote_type must be 'up' or 'down', got {value!r}") from None


def rate_delta(existing: bool | None, new: bool) -> int:
    """
    Rate change for a (re)vote:
      none -> up   +1      none -> down  -1
      same -> same  0
      up   -> down -2      down -> up    +2
    """
    if existing is None:
        return 1 if new else -1
    if existing == new:
        return 0
    return 2 if new else -2


def apply_delta(rate: int, delta: int) -> int:
    return max(0, rate + delta)


async def _existing_vote(session: AsyncSession, submission_id: UUID, visitor_token: str) -> Vote | None:
    return await session.scalar(
        select(Vote)
        .where(Vote.submission_id == submission_id, Vote.visitor_token == visitor_token)
        .execution_options(populate_existing=True)
    )


async def cast_vote(
    session: AsyncSession,
    submission_id: UUID,
    visitor_token: str,
    vote_type: str | bool,
    timeout: float | None = None,
) -> VoteOutcome:
    """
    Record a visitor's vote and adjust the submission's rate.

    Serialized per submission: the vote upsert and the rate update share one
    transaction under the submission's lock, so concurrent votes never lose
    an update and a failure leaves neither change behind. Repeating the same
    vote is a no-op on rate, which makes client retries safe.
    """
    new_type = parse_vote_type(vote_type)

    async with locked_transaction(session, vote_lock_key(submission_id), timeout):
        submission = await session.scalar(
            select(Submission)
            .where(Submission.id == submission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")
        if not submission.is_approved():
            raise NotVotable(f"Submission {submission_id} is {submission.status}, not approved")

        existing = await _existing_vote(session, submission.id, visitor_token)
        delta = rate_delta(existing.vote_type if existing else None, new_type)

        if existing is None:
            session.add(Vote(submission_id=submission.id, visitor_token=visitor_token, vote_type=new_type))
            try:
                await session.flush()
            except IntegrityError as exc:
                raise ConstraintViolation(
                    f"Duplicate vote for submission {submission_id} by this visitor"
                ) from exc
        elif existing.vote_type != new_type:
            existing.vote_type = new_type

        submission.rate = apply_delta(submission.rate, delta)
        await session.flush()
        outcome = VoteOutcome(rate=submission.rate, delta=delta, vote_type=new_type, created=existing is None)

    log.info(
        "vote_recorded",
        submission_id=str(submission_id),
        vote_type=outcome.label,
        adjustment=delta,
        new_rate=outcome.rate,
    )
    return outcome


async def visitor_vote(session: AsyncSession, submission_id: UUID, visitor_token: str | None) -> Vote | None:
    if not visitor_token:
        return None
    return await _existing_vote(session, submission_id, visitor_token)
