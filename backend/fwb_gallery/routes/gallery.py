from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from fwb_gallery.db import get_session
from fwb_gallery.auth_deps import get_visitor_token, require_visitor_token
from fwb_gallery.errors import NotFound
from fwb_gallery.models.submission import Submission
from fwb_gallery.routes.submissions import to_public
from fwb_gallery.schemas.gallery import (
    GalleryPage, GalleryDetail, GalleryEntry, PhotoRef, ProgressPublic, VoteCreate, VoteResult,
)
from fwb_gallery.services import gallery
from fwb_gallery.services.voting import cast_vote, visitor_vote

router = APIRouter(prefix="/gallery", tags=["gallery"])

def _ref(s: Submission | None) -> PhotoRef | None:
    return PhotoRef(id=s.id, public_id=s.public_id) if s else None

@router.get("/photos", response_model=GalleryPage)
async def list_photos(
    session: AsyncSession = Depends(get_session),
    cursor: str | None = Query(default=None, max_length=512),
):
    # page size is fixed server-side
    page = await gallery.list_page(session, cursor)
    return GalleryPage(photos=[to_public(s) for s in page.photos], next_cursor=page.next_cursor, has_more=page.has_more)

@router.get("/entry", response_model=GalleryEntry)
async def gallery_entry(
    session: AsyncSession = Depends(get_session),
    visitor_token: str | None = Depends(get_visitor_token),
):
    return GalleryEntry(photo=_ref(await gallery.entry_photo_for(session, visitor_token)))

@router.get("/photos/{submission_id}", response_model=GalleryDetail)
async def photo_detail(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    visitor_token: str | None = Depends(get_visitor_token),
):
    photo = await gallery.get_approved(session, submission_id)
    if photo is None:
        raise NotFound(f"Photo {submission_id} not found")
    vote = await visitor_vote(session, photo.id, visitor_token)
    progress = await gallery.progress_for(session, visitor_token)
    return GalleryDetail(
        photo=to_public(photo),
        next_photo=_ref(await gallery.next_unrated_for(session, photo, visitor_token)),
        previous_photo=_ref(await gallery.previous_rated_for(session, photo, visitor_token)),
        user_vote=vote.label if vote else None,
        progress=ProgressPublic(rated=progress.rated, total=progress.total),
    )

@router.post("/photos/{submission_id}/vote", response_model=VoteResult)
async def vote_photo(
    submission_id: UUID,
    payload: VoteCreate,
    session: AsyncSession = Depends(get_session),
    visitor_token: str = Depends(require_visitor_token),
):
    outcome = await cast_vote(session, submission_id, visitor_token, payload.vote_type)
    return VoteResult(rate=outcome.rate, vote_type=outcome.label)
