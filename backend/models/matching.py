from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow

KIND_SOLO = "solo"
KIND_GROUP = "group"

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_CANCELLED = "cancelled"
STATUS_MEETING = "meeting"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"

MATCHING_STATUSES = frozenset(
    {
        STATUS_PENDING,
        STATUS_ACCEPTED,
        STATUS_REJECTED,
        STATUS_CANCELLED,
        STATUS_MEETING,
        STATUS_IN_PROGRESS,
        STATUS_COMPLETED,
    }
)
STARTABLE_STATUSES = frozenset({STATUS_ACCEPTED, STATUS_MEETING})
CANCELLABLE_STATUSES = frozenset({STATUS_PENDING, STATUS_ACCEPTED})


class Matching(Base):
    """Meetup offer between one guest and one or more casts.

    Solo and group offers share this table (single-table inheritance on
    ``kind``) so that start/extend/complete are written once against the
    common timing and billing columns.

    ``hourly_rate`` is the rate the session is billed at: the cast's rate for a
    solo offer, the platform base rate for a group offer. ``requested_cast_count``
    is the billing multiplier (always 1 for solo).
    """

    __tablename__ = "matchings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    guest_id: Mapped[str] = mapped_column(String(64), nullable=False)
    chat_room_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=STATUS_PENDING
    )

    proposed_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    proposed_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    proposed_location: Mapped[str] = mapped_column(String(200), nullable=False)

    hourly_rate: Mapped[int] = mapped_column(Integer, nullable=False)
    requested_cast_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False)

    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    scheduled_end_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_end_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    extension_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extension_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {
        "polymorphic_on": "kind",
        "polymorphic_abstract": True,
    }

    __table_args__ = (
        Index("ix_matching_guest_kind_created", "guest_id", "kind", "created_at"),
    )


class SoloMatching(Matching):
    """One guest, one cast."""

    cast_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("cast_profiles.id"), nullable=True, index=True
    )
    cast_responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Subclass columns load with every base-class query; no lazy loads under asyncio.
    __mapper_args__ = {"polymorphic_identity": KIND_SOLO, "polymorphic_load": "inline"}


class GroupMatching(Matching):
    """One guest, many candidate casts tracked as MatchingParticipant rows."""

    recruiting_ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __mapper_args__ = {"polymorphic_identity": KIND_GROUP, "polymorphic_load": "inline"}
