"""SQLAlchemy models for the matching lifecycle schema.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .cast_profile import CastProfile
from .matching import GroupMatching, Matching, SoloMatching
from .matching_participant import MatchingParticipant

__all__ = [
    "Base",
    "CastProfile",
    "GroupMatching",
    "Matching",
    "MatchingParticipant",
    "SoloMatching",
]
