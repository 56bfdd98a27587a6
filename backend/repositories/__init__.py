"""Repository layer for DB access only (CRUD + simple queries).

Repositories are pure DB access - no business logic. All repositories accept
an AsyncSession explicitly and never commit; guarded status transitions go
through ``BaseRepository.update_where`` and report the affected row count.
"""

from .base import BaseRepository
from .cast_profile_repo import CastProfileRepository
from .matching_repo import MatchingRepository
from .participant_repo import ParticipantRepository

__all__ = [
    "BaseRepository",
    "CastProfileRepository",
    "MatchingRepository",
    "ParticipantRepository",
]
