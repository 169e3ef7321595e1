from __future__ import annotations
from fastapi import APIRouter, Depends, Query, Request
from typing import Literal
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from fwb_gallery.db import get_session
from fwb_gallery.auth_deps import require_reviewer
from fwb_gallery.errors import NotFound
from fwb_gallery.models.audit import AuditAction, AuditEntry, AuditSubject
from fwb_gallery.models.submission import Submission
from fwb_gallery.models.user import User
from fwb_gallery.routes.submissions import to_public
from fwb_gallery.schemas.review import AuditEntryPublic, ReviewResult, StatusCounts
from fwb_gallery.schemas.submission import SubmissionPublic
from fwb_gallery.services.audit import list_entries, actor_names
from fwb_gallery.services.review import review_submission, status_counts, list_for_review
from fwb_gallery.services.thumbnails import ThumbnailDispatcher, get_thumbnail_dispatcher

router = APIRouter(prefix="/reviews", tags=["reviews"])

StatusFilter = Literal["new", "approved", "declined", "all"]

def _entry_public(e: AuditEntry, actor_name: str | None) -> AuditEntryPublic:
    return AuditEntryPublic(
        id=e.id,
        subject_type=e.subject_type,
        subject_id=e.subject_id,
        action_type=e.action_type,
        actor_id=e.actor_id,
        actor_name=actor_name,
        changes=e.changes or {},
        description=e.describe(),
        source_address=e.source_address,
        created_at=e.created_at,
    )

def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None

@router.get("", response_model=list[SubmissionPublic])
async def list_submissions(
    session: AsyncSession = Depends(get_session),
    reviewer: User = Depends(require_reviewer),
    status: StatusFilter = Query(default="all"),
    limit: int = Query(default=15, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    rows = await list_for_review(session, None if status == "all" else status, limit=limit, offset=offset)
    return [to_public(s) for s in rows]

@router.get("/stats", response_model=StatusCounts)
async def review_stats(session: AsyncSession = Depends(get_session), reviewer: User = Depends(require_reviewer)):
    return StatusCounts(**await status_counts(session))

async def _review(
    action: AuditAction,
    submission_id: UUID,
    request: Request,
    session: AsyncSession,
    reviewer: User,
    thumbnails: ThumbnailDispatcher,
) -> ReviewResult:
    outcome = await review_submission(
        session, submission_id, reviewer, action, source_address=_client_ip(request), thumbnails=thumbnails
    )
    return ReviewResult(
        submission=to_public(outcome.submission),
        audit_entry=_entry_public(outcome.entry, reviewer.name),
    )

@router.post("/{submission_id}/approve", response_model=ReviewResult)
async def approve_submission(
    submission_id: UUID,
    request: Request,
    session: AsyncSession = Depends(get_session),
    reviewer: User = Depends(require_reviewer),
    thumbnails: ThumbnailDispatcher = Depends(get_thumbnail_dispatcher),
):
    return await _review(AuditAction.APPROVED, submission_id, request, session, reviewer, thumbnails)

@router.post("/{submission_id}/decline", response_model=ReviewResult)
async def decline_submission(
    submission_id: UUID,
    request: Request,
    session: AsyncSession = Depends(get_session),
    reviewer: User = Depends(require_reviewer),
    thumbnails: ThumbnailDispatcher = Depends(get_thumbnail_dispatcher),
):
    return await _review(AuditAction.DECLINED, submission_id, request, session, reviewer, thumbnails)

@router.get("/{submission_id}/audit", response_model=list[AuditEntryPublic])
async def audit_history(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    reviewer: User = Depends(require_reviewer),
):
    if await session.get(Submission, submission_id) is None:
        raise NotFound(f"Submission {submission_id} not found")
    entries = await list_entries(session, AuditSubject.SUBMISSION, submission_id)
    names = await actor_names(session, entries)
    return [_entry_public(e, names.get(e.actor_id)) for e in entries]
