from __future__ import annotations
import uuid
from datetime import datetime, timezone as dt_tz
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from fwb_gallery.db import Base


def _utcnow() -> datetime:
    return datetime.now(dt_tz.utc)


class Vote(Base):
    """One row per (submission, visitor); a revote overwrites vote_type in place."""
    __tablename__ = "votes"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), index=True, nullable=False)
    visitor_token: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    vote_type: Mapped[bool] = mapped_column(Boolean, nullable=False)  # True = up, False = down
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("submission_id", "visitor_token", name="uq_vote_once_per_visitor"),
    )

    @property
    def label(self) -> str:
        return "up" if self.vote_type else "down"
