from __future__ import annotations

from typing import Collection, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.matching import GroupMatching, Matching, SoloMatching, STATUS_PENDING
from .base import BaseRepository

M = TypeVar("M", bound=Matching)


class MatchingRepository(BaseRepository[Matching]):
    """Repository for solo and group matchings."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(
        self, matching_id: str, model: Type[M] = Matching, *, fresh: bool = False
    ) -> Optional[M]:
        """Get a matching by ID, optionally restricted to one kind."""
        matching = await super().get_by_id(Matching, matching_id, fresh=fresh)
        if matching is None or not isinstance(matching, model):
            return None
        return matching

    async def list_for_guest(
        self,
        model: Type[M],
        guest_id: str,
        statuses: Collection[str],
        *,
        order_by_end: bool = False,
    ) -> List[M]:
        """List a guest's matchings of one kind restricted to ``statuses``."""
        order = (
            model.actual_end_at.desc()
            if order_by_end
            else model.created_at.desc()
        )
        stmt = (
            select(model)
            .where(model.guest_id == guest_id)
            .where(model.status.in_(list(statuses)))
            .order_by(order)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_solo_for_cast(
        self, cast_id: str, statuses: Collection[str]
    ) -> List[SoloMatching]:
        """List solo offers addressed to a cast restricted to ``statuses``."""
        stmt = (
            select(SoloMatching)
            .where(SoloMatching.cast_id == cast_id)
            .where(SoloMatching.status.in_(list(statuses)))
            .order_by(SoloMatching.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_pending_solo(
        self, guest_id: str, cast_id: str
    ) -> Optional[SoloMatching]:
        """Most recent pending solo offer from a guest to a cast, if any."""
        stmt = (
            select(SoloMatching)
            .where(SoloMatching.guest_id == guest_id)
            .where(SoloMatching.cast_id == cast_id)
            .where(SoloMatching.status == STATUS_PENDING)
            .order_by(SoloMatching.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_group(self, matching_id: str, *, fresh: bool = False) -> Optional[GroupMatching]:
        return await self.get(matching_id, GroupMatching, fresh=fresh)

    async def get_solo(self, matching_id: str, *, fresh: bool = False) -> Optional[SoloMatching]:
        return await self.get(matching_id, SoloMatching, fresh=fresh)
