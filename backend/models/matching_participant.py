from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow

PARTICIPANT_PENDING = "pending"
PARTICIPANT_ACCEPTED = "accepted"
PARTICIPANT_REJECTED = "rejected"
PARTICIPANT_JOINED = "joined"
PARTICIPANT_COMPLETED = "completed"

PARTICIPANT_STATUSES = (
    PARTICIPANT_PENDING,
    PARTICIPANT_ACCEPTED,
    PARTICIPANT_REJECTED,
    PARTICIPANT_JOINED,
    PARTICIPANT_COMPLETED,
)


class MatchingParticipant(Base):
    """A cast's standing within one group offer."""

    __tablename__ = "matching_participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    matching_id: Mapped[str] = mapped_column(
        ForeignKey("matchings.id", ondelete="CASCADE"), nullable=False
    )
    cast_id: Mapped[str] = mapped_column(
        ForeignKey("cast_profiles.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PARTICIPANT_PENDING
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    joined_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("matching_id", "cast_id", name="uq_participant_matching_cast"),
        Index("ix_participant_matching_status", "matching_id", "status"),
    )
