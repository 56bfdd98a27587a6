"""
Review subsystem boundary. The matching core only needs to know which
completed matchings a guest has already reviewed; storing reviews lives elsewhere.
"""

from __future__ import annotations

from typing import Collection, Iterable, Protocol, Set


class ReviewLookup(Protocol):
    """Protocol for asking the review subsystem which matchings already carry a review."""

    async def reviewed_matching_ids(
        self, guest_id: str, matching_ids: Collection[str]
    ) -> Set[str]:
        """Return the subset of ``matching_ids`` the guest has already reviewed."""
        ...


class NullReviewLookup:
    """No review subsystem wired in: nothing has been reviewed."""

    async def reviewed_matching_ids(
        self, guest_id: str, matching_ids: Collection[str]
    ) -> Set[str]:
        return set()


class StaticReviewLookup:
    """Fixed set of reviewed matching ids (guest-agnostic). For tests and local runs."""

    def __init__(self, reviewed: Iterable[str] = ()) -> None:
        self._reviewed = set(reviewed)

    def mark_reviewed(self, matching_id: str) -> None:
        self._reviewed.add(matching_id)

    async def reviewed_matching_ids(
        self, guest_id: str, matching_ids: Collection[str]
    ) -> Set[str]:
        return self._reviewed.intersection(matching_ids)
