from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.cast_profile import CastProfile
from .base import BaseRepository


class CastProfileRepository(BaseRepository[CastProfile]):
    """Repository for CastProfile entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_by_id(self, id: str) -> Optional[CastProfile]:
        """Get cast profile by ID."""
        return await super().get_by_id(CastProfile, id)

    async def list_active(
        self,
        born_on_or_before: Optional[date] = None,
        born_after: Optional[date] = None,
    ) -> List[CastProfile]:
        """List active casts, optionally bounded by birth date (uses index)."""
        stmt = select(CastProfile).where(CastProfile.is_active.is_(True))
        if born_on_or_before is not None:
            stmt = stmt.where(CastProfile.birth_date <= born_on_or_before)
        if born_after is not None:
            stmt = stmt.where(CastProfile.birth_date > born_after)
        stmt = stmt.order_by(CastProfile.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
