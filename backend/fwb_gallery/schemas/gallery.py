from __future__ import annotations
from typing import Literal
from pydantic import BaseModel
from uuid import UUID
from fwb_gallery.schemas.submission import SubmissionPublic


class GalleryPage(BaseModel):
    photos: list[SubmissionPublic]
    next_cursor: str | None = None
    has_more: bool


class PhotoRef(BaseModel):
    id: UUID
    public_id: str


class ProgressPublic(BaseModel):
    rated: int
    total: int


class GalleryDetail(BaseModel):
    photo: SubmissionPublic
    next_photo: PhotoRef | None = None
    previous_photo: PhotoRef | None = None
    user_vote: Literal["up", "down"] | None = None
    progress: ProgressPublic


class GalleryEntry(BaseModel):
    photo: PhotoRef | None = None


class VoteCreate(BaseModel):
    vote_type: Literal["up", "down"]


class VoteResult(BaseModel):
    rate: int
    vote_type: Literal["up", "down"]
