from __future__ import annotations
from pathlib import PurePosixPath
from pydantic import BaseModel, EmailStr, Field, field_validator
from uuid import UUID
from datetime import datetime
from fwb_gallery.config import settings


class SubmissionCreate(BaseModel):
    # file already stored by the upload collaborator
    file_path: str = Field(min_length=1, max_length=1024)
    original_filename: str | None = Field(default=None, max_length=255)
    mime_type: str | None = Field(default=None, max_length=64)
    file_size: int | None = Field(default=None, ge=0)
    file_hash: str | None = Field(default=None, max_length=64)
    photographer_name: str | None = Field(default=None, max_length=255)
    photographer_email: EmailStr | None = None

    @field_validator("file_path")
    @classmethod
    def _storage_key(cls, v: str) -> str:
        # a relative key inside the uploads area; the image worker opens it as given
        if "\\" in v or "\x00" in v:
            raise ValueError("file_path must be a forward-slash storage key")
        path = PurePosixPath(v)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError("file_path must be relative without '..' segments")
        if not v.startswith(settings.uploads_prefix) or v == settings.uploads_prefix:
            raise ValueError(f"file_path must start with {settings.uploads_prefix!r}")
        return v


class SubmissionPublic(BaseModel):
    id: UUID
    public_id: str
    status: str
    rate: int
    original_filename: str | None = None
    mime_type: str | None = None
    photographer_name: str | None = None
    # 🔒 storage paths are not exposed, only whether assets exist
    has_file: bool
    has_thumbnail: bool
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None


class IntakeResponse(BaseModel):
    submission: SubmissionPublic
    duplicate: bool
    remaining_slots: int


class MySubmissions(BaseModel):
    submissions: list[SubmissionPublic]
    remaining_slots: int


class ThumbnailCallback(BaseModel):
    thumbnail_path: str = Field(min_length=1, max_length=1024)
