from __future__ import annotations

from collections import defaultdict
from typing import Collection, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.matching import GroupMatching
from models.matching_participant import MatchingParticipant
from .base import BaseRepository


class ParticipantRepository(BaseRepository[MatchingParticipant]):
    """Repository for MatchingParticipant rows of group offers."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_for_cast(
        self, matching_id: str, cast_id: str, *, fresh: bool = False
    ) -> Optional[MatchingParticipant]:
        """The participant row of ``cast_id`` within one group offer."""
        stmt = (
            select(MatchingParticipant)
            .where(MatchingParticipant.matching_id == matching_id)
            .where(MatchingParticipant.cast_id == cast_id)
        )
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_matching(self, matching_id: str) -> List[MatchingParticipant]:
        stmt = (
            select(MatchingParticipant)
            .where(MatchingParticipant.matching_id == matching_id)
            .order_by(MatchingParticipant.created_at, MatchingParticipant.cast_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(
        self, matching_ids: Collection[str]
    ) -> Dict[str, Dict[str, int]]:
        """Per-matching participant counts keyed by participant status."""
        if not matching_ids:
            return {}
        stmt = (
            select(
                MatchingParticipant.matching_id,
                MatchingParticipant.status,
                func.count(MatchingParticipant.id),
            )
            .where(MatchingParticipant.matching_id.in_(list(matching_ids)))
            .group_by(MatchingParticipant.matching_id, MatchingParticipant.status)
        )
        result = await self.session.execute(stmt)
        counts: Dict[str, Dict[str, int]] = defaultdict(dict)
        for matching_id, status, n in result.all():
            counts[matching_id][status] = n
        return dict(counts)

    async def list_for_cast(
        self,
        cast_id: str,
        participant_statuses: Collection[str],
        matching_statuses: Collection[str],
    ) -> List[Tuple[MatchingParticipant, GroupMatching]]:
        """A cast's participations joined with their group offer, newest offer first."""
        stmt = (
            select(MatchingParticipant, GroupMatching)
            .join(GroupMatching, GroupMatching.id == MatchingParticipant.matching_id)
            .where(MatchingParticipant.cast_id == cast_id)
            .where(MatchingParticipant.status.in_(list(participant_statuses)))
            .where(GroupMatching.status.in_(list(matching_statuses)))
            .order_by(GroupMatching.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [(p, m) for p, m in result.all()]
