from __future__ import annotations
from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from fwb_gallery.schemas.submission import SubmissionPublic


class AuditEntryPublic(BaseModel):
    id: int
    subject_type: str
    subject_id: UUID
    action_type: str
    actor_id: UUID | None = None
    actor_name: str | None = None
    changes: dict
    description: str
    source_address: str | None = None
    created_at: datetime


class ReviewResult(BaseModel):
    submission: SubmissionPublic
    audit_entry: AuditEntryPublic


class StatusCounts(BaseModel):
    all: int
    new: int
    approved: int
    declined: int
