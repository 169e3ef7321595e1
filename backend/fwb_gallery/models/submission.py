from __future__ import annotations
import uuid
from datetime import datetime, timezone as dt_tz
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, CheckConstraint, Index, Uuid, func
from fwb_gallery.db import Base

STATUS_NEW = "new"
STATUS_APPROVED = "approved"
STATUS_DECLINED = "declined"
STATUSES = (STATUS_NEW, STATUS_APPROVED, STATUS_DECLINED)
# statuses that occupy one of the submitter's slots
ACTIVE_STATUSES = (STATUS_NEW, STATUS_APPROVED)


def _utcnow() -> datetime:
    return datetime.now(dt_tz.utc)


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    public_id: Mapped[str] = mapped_column(String(24), unique=True, nullable=False)  # FWB-2025-00042

    # exactly one of these is set
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True
    )
    visitor_token: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)

    original_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text(), nullable=True)
    thumbnail_path: Mapped[str | None] = mapped_column(Text(), nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_hash: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)  # sha256 hex
    mime_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    photographer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photographer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_NEW)  # new|approved|declined
    rate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("rate >= 0", name="ck_submission_rate_non_negative"),
        CheckConstraint(
            "(user_id IS NULL) <> (visitor_token IS NULL)", name="ck_submission_one_submitter"
        ),
        CheckConstraint("status IN ('new', 'approved', 'declined')", name="ck_submission_status"),
        Index("ix_submissions_status_submitted_id", "status", "submitted_at", "id"),
    )

    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED

    def is_public_submission(self) -> bool:
        return self.visitor_token is not None
