from __future__ import annotations
import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.config import settings
from fwb_gallery.models.submission import Submission

log = structlog.get_logger()

COUNTER_WIDTH = 5


def format_public_id(year: int, counter: int) -> str:
    return f"{settings.public_id_prefix}-{year}-{counter:0{COUNTER_WIDTH}d}"


def parse_counter(public_id: str | None) -> int:
    """Trailing sequence number of a public id; 0 when absent or malformed."""
    if not public_id:
        return 0
    tail = public_id.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else 0


async def next_public_id(session: AsyncSession, year: int) -> str:
    """
    Next sequential public id for ``year``.

    Must run inside ``locked_transaction(session, public_id_lock_key(year))``
    and the caller must insert the new row before that transaction ends,
    otherwise two intakes can compute the same counter.
    """
    prefix = f"{settings.public_id_prefix}-{year}-"
    # longer ids sort after shorter ones once the counter outgrows 5 digits
    last = await session.scalar(
        select(Submission.public_id)
        .where(Submission.public_id.like(f"{prefix}%"))
        .order_by(func.length(Submission.public_id).desc(), Submission.public_id.desc())
        .limit(1)
    )
    public_id = format_public_id(year, parse_counter(last) + 1)
    log.debug("public_id_allocated", public_id=public_id, previous=last)
    return public_id
