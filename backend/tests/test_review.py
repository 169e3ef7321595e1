from __future__ import annotations
import uuid
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select

from fwb_gallery.errors import NotFound
from fwb_gallery.models.audit import AuditEntry, AuditAction, AuditSubject
from fwb_gallery.models.submission import Submission
from fwb_gallery.services import review
from fwb_gallery.services.audit import list_entries, review_count, subject_ref
from fwb_gallery.services.review import approve, decline, status_counts, list_for_review
from fwb_gallery.services.gallery import list_page
from fwb_gallery.services.thumbnails import redispatch_missing_thumbnails


class BrokenQueue:
    def dispatch(self, submission):
        raise RedisConnectionError("redis is down")


@pytest.mark.asyncio
async def test_approve_sets_reviewer_and_writes_audit(session, make_submission, make_user):
    reviewer = await make_user("Alice")
    sub = await make_submission(status="new")

    outcome = await approve(session, sub.id, reviewer, source_address="203.0.113.7")
    assert outcome.submission.status == "approved"
    assert outcome.submission.reviewed_by == reviewer.id
    assert outcome.submission.reviewed_at is not None

    entries = await list_entries(session, AuditSubject.SUBMISSION, sub.id)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.is_approval() and not entry.is_decline()
    assert entry.actor_id == reviewer.id
    assert entry.source_address == "203.0.113.7"
    assert entry.changes == {"from": "new", "to": "approved", "previous_reviewer": None, "previous_reviewed_at": None}
    assert entry.describe() == "Changed from new to approved"


@pytest.mark.asyncio
async def test_second_reviewer_overrides_and_history_keeps_both(session, make_submission, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    sub = await make_submission(status="new")

    await approve(session, sub.id, alice)
    outcome = await decline(session, sub.id, bob)
    assert outcome.submission.status == "declined"
    assert outcome.submission.reviewed_by == bob.id

    entries = await list_entries(session, AuditSubject.SUBMISSION, sub.id)
    assert [e.action_type for e in entries] == ["approved", "declined"]
    second = entries[1].changes
    assert second["from"] == "approved" and second["to"] == "declined"
    assert second["previous_reviewer"] == "Alice"
    assert second["previous_reviewed_at"] is not None
    assert await review_count(session, AuditSubject.SUBMISSION, sub.id) == 2


@pytest.mark.asyncio
async def test_every_entry_records_prior_status(session, make_submission, make_user):
    reviewer = await make_user()
    sub = await make_submission(status="new")
    for action in (approve, approve, decline, approve, decline):
        await action(session, sub.id, reviewer)

    entries = await list_entries(session, AuditSubject.SUBMISSION, sub.id)
    statuses = ["new"] + [e.changes["to"] for e in entries]
    for i, entry in enumerate(entries):
        assert entry.changes["from"] == statuses[i]
        assert entry.changes["to"] == entry.action_type
    current = await session.scalar(select(Submission.status).where(Submission.id == sub.id))
    assert current == entries[-1].changes["to"] == "declined"


@pytest.mark.asyncio
async def test_review_of_missing_submission(session, make_user):
    reviewer = await make_user()
    with pytest.raises(NotFound):
        await approve(session, uuid.uuid4(), reviewer)
    assert (await session.execute(select(AuditEntry))).scalars().all() == []


@pytest.mark.asyncio
async def test_audit_failure_rolls_back_status_change(session, session_factory, make_submission, make_user, monkeypatch):
    reviewer = await make_user()
    sub = await make_submission(status="new")
    sub_id = sub.id

    async def boom(*args, **kwargs):
        raise RuntimeError("audit table unavailable")

    monkeypatch.setattr(review, "append_entry", boom)
    with pytest.raises(RuntimeError):
        await approve(session, sub_id, reviewer)

    async with session_factory() as s:
        fresh = await s.get(Submission, sub_id)
        assert fresh.status == "new"
        assert fresh.reviewed_by is None and fresh.reviewed_at is None
        assert (await s.execute(select(AuditEntry))).scalars().all() == []


@pytest.mark.asyncio
async def test_approval_requests_thumbnail(session, make_submission, make_user, thumbnails):
    reviewer = await make_user()
    sub = await make_submission(status="new")
    await approve(session, sub.id, reviewer, thumbnails=thumbnails)
    await decline(session, sub.id, reviewer, thumbnails=thumbnails)
    assert thumbnails.dispatched == [sub.id]


@pytest.mark.asyncio
async def test_queue_outage_does_not_undo_approval(session, session_factory, make_submission, make_user):
    reviewer = await make_user()
    sub = await make_submission(status="new")
    outcome = await approve(session, sub.id, reviewer, thumbnails=BrokenQueue())
    assert outcome.submission.status == "approved"
    async with session_factory() as s:
        assert (await s.get(Submission, sub.id)).status == "approved"


@pytest.mark.asyncio
async def test_status_counts_and_listing(session, make_submission, make_user):
    await make_submission(status="new")
    await make_submission(status="new")
    await make_submission(status="approved")
    await make_submission(status="declined")

    assert await status_counts(session) == {"all": 4, "new": 2, "approved": 1, "declined": 1}
    pending = await list_for_review(session, "new")
    assert [s.status for s in pending] == ["new", "new"]
    # newest first
    assert pending[0].submitted_at > pending[1].submitted_at
    assert len(await list_for_review(session, limit=3)) == 3


def test_describe_falls_back_to_unknown():
    entry = AuditEntry(action_type=AuditAction.DECLINED.value, changes={})
    assert entry.describe() == "Changed from unknown to unknown"
    assert entry.is_decline()


def test_subject_ref_rejects_unsupported_types():
    sub = Submission(id=uuid.uuid4(), public_id="FWB-2025-00001", visitor_token="v")
    assert subject_ref(sub) == (AuditSubject.SUBMISSION, sub.id)
    with pytest.raises(TypeError):
        subject_ref(object())


@pytest.mark.asyncio
async def test_redispatch_recovers_approvals_lost_to_queue_outage(session, make_submission, make_user, thumbnails):
    reviewer = await make_user()
    lost = await make_submission(status="new", visible=False)
    lost.file_path = "uploads/2025/11/lost.jpg"
    done = await make_submission()  # approved with a thumbnail already
    pending = await make_submission(status="new", visible=False)
    await session.commit()

    await approve(session, lost.id, reviewer, thumbnails=BrokenQueue())
    # approved but hidden: no thumbnail ever arrived
    assert [p.id for p in (await list_page(session)).photos] == [done.id]

    sent = await redispatch_missing_thumbnails(session, thumbnails)
    assert [s.id for s in sent] == [lost.id]
    assert thumbnails.dispatched == [lost.id]
    assert pending.id not in thumbnails.dispatched

    thumbnails.dispatched.clear()
    await redispatch_missing_thumbnails(session, thumbnails, regenerate_all=True)
    assert thumbnails.dispatched == [lost.id, done.id]


@pytest.mark.asyncio
async def test_redispatch_reports_nothing_sent_when_queue_is_down(session, make_submission):
    sub = await make_submission(visible=False)
    sub.file_path = "uploads/2025/11/x.jpg"
    await session.commit()
    assert await redispatch_missing_thumbnails(session, BrokenQueue()) == []
