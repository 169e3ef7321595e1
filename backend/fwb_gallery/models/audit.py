from __future__ import annotations
import enum
import uuid
from datetime import datetime, timezone as dt_tz
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Integer, String, DateTime, ForeignKey, Index, JSON, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from fwb_gallery.db import Base


class AuditSubject(str, enum.Enum):
    """Closed set of entity types that can carry review history."""
    SUBMISSION = "submission"


class AuditAction(str, enum.Enum):
    APPROVED = "approved"
    DECLINED = "declined"


def _utcnow() -> datetime:
    return datetime.now(dt_tz.utc)


class AuditEntry(Base):
    """
    Append-only review ledger. Rows are inserted by the review workflow and
    never updated or deleted.

    changes holds the state immediately before the mutation:
      {"from": status, "to": status, "previous_reviewer": name|None,
       "previous_reviewed_at": iso8601|None}
    """
    __tablename__ = "audit_entries"

    # integer key keeps insertion order as a tie-breaker for equal timestamps
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    subject_type: Mapped[str] = mapped_column(String(32), nullable=False)
    subject_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action_type: Mapped[str] = mapped_column(String(16), nullable=False)  # approved|declined
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    changes: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    source_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # fits IPv6
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_audit_entries_subject", "subject_type", "subject_id", "created_at"),
    )

    def is_approval(self) -> bool:
        return self.action_type == AuditAction.APPROVED.value

    def is_decline(self) -> bool:
        return self.action_type == AuditAction.DECLINED.value

    def describe(self) -> str:
        changes = self.changes or {}
        return f"Changed from {changes.get('from') or 'unknown'} to {changes.get('to') or 'unknown'}"
