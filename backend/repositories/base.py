from __future__ import annotations

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Base repository with common CRUD helpers.

    No commits are performed here - commit responsibility is left to the
    service layer.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with an async session."""
        self.session = session

    async def add(self, entity: T) -> T:
        """Add an entity to the session (not committed)."""
        self.session.add(entity)
        return entity

    async def add_all(self, entities: Iterable[T]) -> List[T]:
        """Add several entities and flush so that constraint violations surface here."""
        rows = list(entities)
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_by_id(
        self, model: Type[T], id_value: str | int, *, fresh: bool = False
    ) -> Optional[T]:
        """Get an entity by its primary key.

        ``fresh=True`` re-reads the row even when it is already in the
        identity map (needed after a bulk UPDATE).
        """
        return await self.session.get(model, id_value, populate_existing=fresh)

    async def update_where(
        self, model: Type[T], *criteria: Any, values: Dict[str, Any]
    ) -> int:
        """Single guarded UPDATE; returns the number of rows affected."""
        stmt = (
            update(model)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
