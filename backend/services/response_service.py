"""
Cast responses to offers.

A response is applied with one UPDATE guarded by the expected prior status.
Only when that UPDATE touches no row do we read the row back, to tell the
caller whether the offer is unknown, not theirs, or already answered.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from models.base import utcnow
from models.matching import GroupMatching, SoloMatching, STATUS_PENDING
from models.matching_participant import MatchingParticipant, PARTICIPANT_PENDING
from repositories.matching_repo import MatchingRepository
from repositories.participant_repo import ParticipantRepository

logger = logging.getLogger(__name__)

Response = Literal["accepted", "rejected"]
RESPONSES = ("accepted", "rejected")


def _check_response(response: str) -> None:
    if response not in RESPONSES:
        raise ValidationError('response must be "accepted" or "rejected"')


async def respond_to_solo_matching(
    session: AsyncSession,
    matching_id: str,
    cast_id: str,
    response: Response,
    *,
    now: Optional[datetime] = None,
) -> SoloMatching:
    """Accept or reject a pending solo offer addressed to ``cast_id``.

    Accepting does not start the session.
    """
    _check_response(response)
    now = now or utcnow()
    repo = MatchingRepository(session)

    affected = await repo.update_where(
        SoloMatching,
        SoloMatching.id == matching_id,
        SoloMatching.cast_id == cast_id,
        SoloMatching.status == STATUS_PENDING,
        values={"status": response, "cast_responded_at": now, "updated_at": now},
    )
    matching = await repo.get_solo(matching_id, fresh=True)
    if affected == 0:
        if matching is None:
            raise NotFoundError(f"Matching not found: {matching_id}")
        if matching.cast_id != cast_id:
            logger.warning("Cast %s tried to respond to solo matching %s owned by another cast", cast_id, matching_id)
            raise ForbiddenError("You are not allowed to respond to this matching")
        logger.warning(
            "Rejected response %s on solo matching %s: status is %s", response, matching_id, matching.status
        )
        raise InvalidStateError("This matching has already been responded to")

    logger.info("Solo matching %s %s by cast %s", matching_id, response, cast_id)
    return matching


async def respond_to_group_matching(
    session: AsyncSession,
    matching_id: str,
    cast_id: str,
    response: Response,
    *,
    now: Optional[datetime] = None,
) -> GroupMatching:
    """Accept or reject the caller's pending participation in a group offer.

    Only the caller's participant row changes; the offer's own status does
    not. Responses are refused once the guest has closed recruiting.
    """
    _check_response(response)
    now = now or utcnow()
    matching_repo = MatchingRepository(session)
    participant_repo = ParticipantRepository(session)

    still_recruiting = (
        select(GroupMatching.id)
        .where(GroupMatching.id == matching_id)
        .where(GroupMatching.status == STATUS_PENDING)
        .where(GroupMatching.recruiting_ended_at.is_(None))
    )
    affected = await participant_repo.update_where(
        MatchingParticipant,
        MatchingParticipant.matching_id == matching_id,
        MatchingParticipant.cast_id == cast_id,
        MatchingParticipant.status == PARTICIPANT_PENDING,
        MatchingParticipant.matching_id.in_(still_recruiting),
        values={"status": response, "responded_at": now, "updated_at": now},
    )
    matching = await matching_repo.get_group(matching_id, fresh=True)
    if affected == 0:
        if matching is None:
            raise NotFoundError(f"Matching not found: {matching_id}")
        participant = await participant_repo.get_for_cast(matching_id, cast_id, fresh=True)
        if participant is None:
            logger.warning("Cast %s is not a participant of group matching %s", cast_id, matching_id)
            raise ForbiddenError("You are not allowed to respond to this matching")
        if participant.status != PARTICIPANT_PENDING:
            logger.warning(
                "Rejected response %s on group matching %s by cast %s: participant is %s",
                response, matching_id, cast_id, participant.status,
            )
            raise InvalidStateError("This matching has already been responded to")
        logger.warning(
            "Rejected response %s on group matching %s: recruiting closed (status=%s)",
            response, matching_id, matching.status,
        )
        raise InvalidStateError("This matching is no longer recruiting")

    logger.info("Group matching %s %s by cast %s", matching_id, response, cast_id)
    return matching
