from __future__ import annotations
import secrets
from fastapi import APIRouter, Depends, HTTPException, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from fwb_gallery.config import settings, DEFAULT_CALLBACK_TOKEN
from fwb_gallery.db import get_session
from fwb_gallery.auth_deps import get_optional_user, get_visitor_token
from fwb_gallery.models.submission import Submission
from fwb_gallery.models.user import User
from fwb_gallery.schemas.submission import (
    SubmissionCreate, SubmissionPublic, IntakeResponse, MySubmissions, ThumbnailCallback,
)
from fwb_gallery.services.intake import (
    Submitter, FileRef, Photographer, create_submission, attach_thumbnail, submissions_for, remaining_slots,
)
from fwb_gallery.services.thumbnails import ThumbnailDispatcher, get_thumbnail_dispatcher

router = APIRouter(prefix="/submissions", tags=["submissions"])

def to_public(s: Submission) -> SubmissionPublic:
    return SubmissionPublic(
        id=s.id,
        public_id=s.public_id,
        status=s.status,
        rate=s.rate,
        original_filename=s.original_filename,
        mime_type=s.mime_type,
        photographer_name=s.photographer_name,
        has_file=bool(s.file_path),
        has_thumbnail=bool(s.thumbnail_path),
        submitted_at=s.submitted_at,
        reviewed_at=s.reviewed_at,
        reviewed_by=s.reviewed_by,
    )

def _submitter(user: User | None, visitor_token: str | None) -> Submitter:
    # an authenticated account takes precedence over the browser token
    if user is not None:
        return Submitter.account(user.id)
    if visitor_token:
        return Submitter.visitor(visitor_token)
    raise HTTPException(status_code=401, detail="Sign in or provide a visitor token")

@router.post("", status_code=201, response_model=IntakeResponse)
async def submit_photo(
    payload: SubmissionCreate,
    session: AsyncSession = Depends(get_session),
    user: User | None = Depends(get_optional_user),
    visitor_token: str | None = Depends(get_visitor_token),
    thumbnails: ThumbnailDispatcher = Depends(get_thumbnail_dispatcher),
):
    result = await create_submission(
        session,
        _submitter(user, visitor_token),
        FileRef(
            file_path=payload.file_path,
            original_filename=payload.original_filename,
            mime_type=payload.mime_type,
            file_size=payload.file_size,
            file_hash=payload.file_hash,
        ),
        Photographer(name=payload.photographer_name, email=payload.photographer_email),
        thumbnails=thumbnails,
    )
    return IntakeResponse(
        submission=to_public(result.submission),
        duplicate=result.duplicate,
        remaining_slots=result.remaining_slots,
    )

@router.get("/mine", response_model=MySubmissions)
async def my_submissions(
    session: AsyncSession = Depends(get_session),
    user: User | None = Depends(get_optional_user),
    visitor_token: str | None = Depends(get_visitor_token),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
):
    submitter = _submitter(user, visitor_token)
    rows = await submissions_for(session, submitter, limit=limit, offset=offset)
    return MySubmissions(
        submissions=[to_public(s) for s in rows],
        remaining_slots=await remaining_slots(session, submitter),
    )

def _callback_authorized(token: str | None) -> bool:
    expected = settings.thumbnail_callback_token
    # the built-in token only works in dev
    if not expected or (expected == DEFAULT_CALLBACK_TOKEN and settings.environment != "dev"):
        return False
    return token is not None and secrets.compare_digest(token.encode(), expected.encode())

@router.post("/{submission_id}/thumbnail", response_model=SubmissionPublic)
async def thumbnail_ready(
    submission_id: UUID,
    payload: ThumbnailCallback,
    session: AsyncSession = Depends(get_session),
    x_callback_token: str | None = Header(default=None, alias="X-Callback-Token"),
):
    if not _callback_authorized(x_callback_token):
        raise HTTPException(status_code=403, detail="Invalid callback token")
    s = await attach_thumbnail(session, submission_id, payload.thumbnail_path)
    return to_public(s)
