"""Role-scoped read views over matchings. Derived on every call, nothing stored."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ForbiddenError, InvalidStateError, NotFoundError
from models.matching import (
    GroupMatching,
    MATCHING_STATUSES,
    SoloMatching,
    STATUS_ACCEPTED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_MEETING,
    STATUS_PENDING,
)
from models.matching_participant import (
    MatchingParticipant,
    PARTICIPANT_ACCEPTED,
    PARTICIPANT_COMPLETED,
    PARTICIPANT_JOINED,
    PARTICIPANT_PENDING,
    PARTICIPANT_STATUSES,
)
from repositories.matching_repo import MatchingRepository
from repositories.participant_repo import ParticipantRepository
from services.review_lookup import ReviewLookup

GUEST_ACTIVE_STATUSES = MATCHING_STATUSES - {STATUS_COMPLETED}
CAST_ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)
CAST_SESSION_STATUSES = (STATUS_MEETING, STATUS_IN_PROGRESS)
CAST_VISIBLE_PARTICIPANT_STATUSES = (PARTICIPANT_PENDING, PARTICIPANT_ACCEPTED, PARTICIPANT_JOINED)
CAST_VISIBLE_GROUP_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_MEETING, STATUS_IN_PROGRESS)


@dataclass
class GroupMatchingSummary:
    """Guest view of a group offer: participant rows only as counts."""

    matching: GroupMatching
    participant_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def participant_total(self) -> int:
        return sum(self.participant_counts.values())

    @property
    def accepted_count(self) -> int:
        return sum(
            self.participant_counts.get(s, 0)
            for s in (PARTICIPANT_ACCEPTED, PARTICIPANT_JOINED, PARTICIPANT_COMPLETED)
        )


@dataclass
class CastParticipation:
    """Cast view of a group offer: the caller's own standing plus the offer."""

    participant: MatchingParticipant
    matching: GroupMatching


async def list_guest_solo_matchings(session: AsyncSession, guest_id: str) -> List[SoloMatching]:
    """Guest's solo offers that are not completed, newest first."""
    return await MatchingRepository(session).list_for_guest(SoloMatching, guest_id, GUEST_ACTIVE_STATUSES)


async def list_completed_unreviewed(
    session: AsyncSession, guest_id: str, reviews: ReviewLookup
) -> List[SoloMatching]:
    """Guest's completed solo offers that the review subsystem has no review for."""
    completed = await MatchingRepository(session).list_for_guest(
        SoloMatching, guest_id, (STATUS_COMPLETED,), order_by_end=True
    )
    if not completed:
        return []
    reviewed = await reviews.reviewed_matching_ids(guest_id, [m.id for m in completed])
    return [m for m in completed if m.id not in reviewed]


async def list_cast_solo_matchings(session: AsyncSession, cast_id: str) -> List[SoloMatching]:
    """Offers awaiting or holding the cast's acceptance (pending/accepted only)."""
    return await MatchingRepository(session).list_solo_for_cast(cast_id, CAST_ACTIVE_STATUSES)


async def list_cast_solo_sessions(session: AsyncSession, cast_id: str) -> List[SoloMatching]:
    """Solo sessions the cast is currently in, so they can be completed."""
    return await MatchingRepository(session).list_solo_for_cast(cast_id, CAST_SESSION_STATUSES)


async def get_pending_offer_for_cast(
    session: AsyncSession, guest_id: str, cast_id: str
) -> Optional[SoloMatching]:
    """The guest's open solo offer to ``cast_id``, or None."""
    return await MatchingRepository(session).find_pending_solo(guest_id, cast_id)


async def list_guest_group_matchings(
    session: AsyncSession, guest_id: str
) -> List[GroupMatchingSummary]:
    """Guest's group offers that are not completed, each with participant counts."""
    matchings = await MatchingRepository(session).list_for_guest(
        GroupMatching, guest_id, GUEST_ACTIVE_STATUSES
    )
    counts = await ParticipantRepository(session).count_by_status([m.id for m in matchings])
    summaries = []
    for m in matchings:
        per_status = {s: 0 for s in PARTICIPANT_STATUSES}
        per_status.update(counts.get(m.id, {}))
        summaries.append(GroupMatchingSummary(matching=m, participant_counts=per_status))
    return summaries


async def list_cast_group_participations(
    session: AsyncSession, cast_id: str
) -> List[CastParticipation]:
    """Cast's live participations; rejected rows and finished offers are hidden."""
    rows = await ParticipantRepository(session).list_for_cast(
        cast_id, CAST_VISIBLE_PARTICIPANT_STATUSES, CAST_VISIBLE_GROUP_STATUSES
    )
    return [CastParticipation(participant=p, matching=m) for p, m in rows]


async def get_reviewable_matching(
    session: AsyncSession,
    matching_id: str,
    guest_id: str,
    reviews: ReviewLookup,
) -> SoloMatching:
    """Gate for the review subsystem: completed, owned by ``guest_id`` and not yet reviewed."""
    matching = await MatchingRepository(session).get_solo(matching_id)
    if matching is None:
        raise NotFoundError(f"Matching not found: {matching_id}")
    if matching.guest_id != guest_id:
        raise ForbiddenError("You are not allowed to review this matching")
    if matching.status != STATUS_COMPLETED:
        raise InvalidStateError("Only completed matchings can be reviewed")
    if matching.id in await reviews.reviewed_matching_ids(guest_id, [matching.id]):
        raise InvalidStateError("This matching has already been reviewed")
    return matching
