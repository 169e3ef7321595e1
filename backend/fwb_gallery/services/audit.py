from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fwb_gallery.models.audit import AuditEntry, AuditSubject, AuditAction
from fwb_gallery.models.submission import Submission
from fwb_gallery.models.user import User

# Model classes that may appear as an audit subject. Extend by adding a
# variant to AuditSubject and an entry here.
_SUBJECT_TYPES: dict[type, AuditSubject] = {
    Submission: AuditSubject.SUBMISSION,
}


def subject_ref(obj) -> tuple[AuditSubject, UUID]:
    """(subject_type, subject_id) for a supported model instance."""
    try:
        variant = _SUBJECT_TYPES[type(obj)]
    except KeyError:
        raise TypeError(f"{type(obj).__name__} is not an auditable subject") from None
    return variant, obj.id


async def append_entry(
    session: AsyncSession,
    subject,
    action: AuditAction,
    actor: User,
    changes: dict,
    source_address: str | None = None,
) -> AuditEntry:
    """
    Insert one audit row in the caller's transaction. Never touches the
    subject itself; a failure here aborts the caller's whole unit of work.
    """
    subject_type, subject_id = subject_ref(subject)
    entry = AuditEntry(
        subject_type=subject_type.value,
        subject_id=subject_id,
        action_type=AuditAction(action).value,
        actor_id=actor.id,
        changes=dict(changes),
        source_address=source_address,
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_entries(session: AsyncSession, subject_type: AuditSubject, subject_id: UUID) -> list[AuditEntry]:
    return list((await session.execute(
        select(AuditEntry)
        .where(AuditEntry.subject_type == AuditSubject(subject_type).value, AuditEntry.subject_id == subject_id)
        .order_by(AuditEntry.created_at.asc(), AuditEntry.id.asc())
    )).scalars().all())


async def review_count(session: AsyncSession, subject_type: AuditSubject, subject_id: UUID) -> int:
    total = await session.scalar(
        select(func.count()).select_from(AuditEntry)
        .where(AuditEntry.subject_type == AuditSubject(subject_type).value, AuditEntry.subject_id == subject_id)
        .where(AuditEntry.action_type.in_([a.value for a in AuditAction]))
    )
    return int(total or 0)


async def actor_names(session: AsyncSession, entries: list[AuditEntry]) -> dict[UUID, str]:
    ids = {e.actor_id for e in entries if e.actor_id}
    if not ids:
        return {}
    rows = (await session.execute(select(User.id, User.name).where(User.id.in_(ids)))).all()
    return {uid: name for uid, name in rows}
