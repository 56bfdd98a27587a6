"""
Session lifecycle shared by solo and group matchings.

    pending -> accepted -> (meeting) -> in_progress -> completed
    pending -> rejected
    pending | accepted -> cancelled

Every transition is one UPDATE whose WHERE clause repeats the expected prior
state; a zero row count means another request got there first and is reported
as InvalidStateError. Reads beforehand only serve authorization and error
classification.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Collection, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from models.base import utcnow
from models.matching import (
    CANCELLABLE_STATUSES,
    GroupMatching,
    Matching,
    SoloMatching,
    STARTABLE_STATUSES,
    STATUS_ACCEPTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
)
from models.matching_participant import (
    MatchingParticipant,
    PARTICIPANT_ACCEPTED,
    PARTICIPANT_COMPLETED,
    PARTICIPANT_JOINED,
)
from repositories.matching_repo import MatchingRepository
from repositories.participant_repo import ParticipantRepository
from services import accounting
from services.dates import add_minutes

logger = logging.getLogger(__name__)

EXTENSION_STEP_MINUTES = 30


def validate_extension_minutes(extension_minutes: int) -> None:
    """Extensions are positive whole multiples of 30 minutes."""
    if (
        not isinstance(extension_minutes, int)
        or isinstance(extension_minutes, bool)
        or extension_minutes <= 0
    ):
        raise ValidationError("Extension must be a positive integer")
    if extension_minutes % EXTENSION_STEP_MINUTES != 0:
        raise ValidationError("Extension must be specified in 30-minute increments")


def extension_points(matching: Matching, extension_minutes: int) -> int:
    """Points billed for an extension: same formula as the offer, per billed cast."""
    return accounting.points(extension_minutes, matching.hourly_rate) * matching.requested_cast_count


async def _load(session: AsyncSession, matching_id: str, model: Type[Matching] = Matching) -> Matching:
    matching = await MatchingRepository(session).get(matching_id, model, fresh=True)
    if matching is None:
        raise NotFoundError(f"Matching not found: {matching_id}")
    return matching


async def _authorize_cast(
    session: AsyncSession,
    matching: Matching,
    cast_id: str,
    participant_statuses: Collection[str],
    action: str,
) -> None:
    """Solo: caller is the assigned cast. Group: caller holds a participant row in one of ``participant_statuses``."""
    if isinstance(matching, SoloMatching):
        if matching.cast_id != cast_id:
            logger.warning("Cast %s may not %s solo matching %s", cast_id, action, matching.id)
            raise ForbiddenError(f"You are not allowed to {action} this matching")
        return
    participant = await ParticipantRepository(session).get_for_cast(matching.id, cast_id, fresh=True)
    if participant is None or participant.status not in participant_statuses:
        logger.warning("Cast %s may not %s group matching %s", cast_id, action, matching.id)
        raise ForbiddenError(f"You are not allowed to {action} this matching")


def _authorize_guest(matching: Matching, guest_id: str, action: str) -> None:
    if matching.guest_id != guest_id:
        logger.warning("Guest %s may not %s matching %s", guest_id, action, matching.id)
        raise ForbiddenError(f"You are not allowed to {action} this matching")


def _reject_transition(matching: Matching, action: str, message: str) -> InvalidStateError:
    logger.warning("Cannot %s matching %s from status %s", action, matching.id, matching.status)
    return InvalidStateError(message)


async def start_matching(
    session: AsyncSession,
    matching_id: str,
    cast_id: str,
    *,
    model: Type[Matching] = Matching,
    now: Optional[datetime] = None,
) -> Matching:
    """Start the session: accepted|meeting -> in_progress.

    scheduled_end_at = started_at + proposed duration + any extension already
    on the record. For group offers every accepted participant joins.
    """
    now = now or utcnow()
    matching = await _load(session, matching_id, model)
    await _authorize_cast(session, matching, cast_id, (PARTICIPANT_ACCEPTED,), "start")
    if matching.status not in STARTABLE_STATUSES:
        raise _reject_transition(matching, "start", "Only accepted matchings can be started")

    scheduled_end_at = add_minutes(
        now, matching.proposed_duration_minutes + matching.extension_minutes
    )
    repo = MatchingRepository(session)
    affected = await repo.update_where(
        Matching,
        Matching.id == matching_id,
        Matching.status.in_(list(STARTABLE_STATUSES)),
        values={
            "status": STATUS_IN_PROGRESS,
            "started_at": now,
            "scheduled_end_at": scheduled_end_at,
            "updated_at": now,
        },
    )
    if affected == 0:
        raise _reject_transition(matching, "start", "Only accepted matchings can be started")

    if isinstance(matching, GroupMatching):
        await ParticipantRepository(session).update_where(
            MatchingParticipant,
            MatchingParticipant.matching_id == matching_id,
            MatchingParticipant.status == PARTICIPANT_ACCEPTED,
            values={"status": PARTICIPANT_JOINED, "joined_at": now, "updated_at": now},
        )

    logger.info("Matching %s started by cast %s, scheduled end %s", matching_id, cast_id, scheduled_end_at.isoformat())
    return await _load(session, matching_id)


async def extend_matching(
    session: AsyncSession,
    matching_id: str,
    guest_id: str,
    extension_minutes: int,
    *,
    model: Type[Matching] = Matching,
    now: Optional[datetime] = None,
) -> Matching:
    """Lengthen a running session by a multiple of 30 minutes.

    The guard includes the extension total read beforehand, so a duplicate
    submission racing this one fails instead of extending twice.
    """
    validate_extension_minutes(extension_minutes)
    now = now or utcnow()
    matching = await _load(session, matching_id, model)
    _authorize_guest(matching, guest_id, "extend")
    if matching.started_at is None or matching.scheduled_end_at is None:
        raise _reject_transition(matching, "extend", "Only matchings in progress can be extended")
    if matching.status != STATUS_IN_PROGRESS:
        raise _reject_transition(matching, "extend", "Only matchings in progress can be extended")

    added_points = extension_points(matching, extension_minutes)
    previous_minutes = matching.extension_minutes
    repo = MatchingRepository(session)
    affected = await repo.update_where(
        Matching,
        Matching.id == matching_id,
        Matching.status == STATUS_IN_PROGRESS,
        Matching.extension_minutes == previous_minutes,
        values={
            "extension_minutes": previous_minutes + extension_minutes,
            "extension_points": matching.extension_points + added_points,
            "scheduled_end_at": add_minutes(matching.scheduled_end_at, extension_minutes),
            "updated_at": now,
        },
    )
    if affected == 0:
        raise _reject_transition(
            matching, "extend", "This matching was changed by another request; reload and try again"
        )

    logger.info(
        "Matching %s extended by %d min (+%d points) by guest %s",
        matching_id, extension_minutes, added_points, guest_id,
    )
    return await _load(session, matching_id)


async def complete_matching(
    session: AsyncSession,
    matching_id: str,
    cast_id: str,
    *,
    model: Type[Matching] = Matching,
    now: Optional[datetime] = None,
) -> Matching:
    """End the session: in_progress -> completed. A second call fails."""
    now = now or utcnow()
    matching = await _load(session, matching_id, model)
    await _authorize_cast(
        session, matching, cast_id, (PARTICIPANT_JOINED, PARTICIPANT_COMPLETED), "complete"
    )
    if matching.status != STATUS_IN_PROGRESS:
        raise _reject_transition(matching, "complete", "Only matchings in progress can be completed")

    repo = MatchingRepository(session)
    affected = await repo.update_where(
        Matching,
        Matching.id == matching_id,
        Matching.status == STATUS_IN_PROGRESS,
        values={"status": STATUS_COMPLETED, "actual_end_at": now, "updated_at": now},
    )
    if affected == 0:
        raise _reject_transition(matching, "complete", "Only matchings in progress can be completed")

    if isinstance(matching, GroupMatching):
        await ParticipantRepository(session).update_where(
            MatchingParticipant,
            MatchingParticipant.matching_id == matching_id,
            MatchingParticipant.status == PARTICIPANT_JOINED,
            values={"status": PARTICIPANT_COMPLETED, "updated_at": now},
        )

    logger.info("Matching %s completed by cast %s", matching_id, cast_id)
    return await _load(session, matching_id)


async def cancel_matching(
    session: AsyncSession,
    matching_id: str,
    guest_id: str,
    *,
    model: Type[Matching] = Matching,
    now: Optional[datetime] = None,
) -> Matching:
    """Owning guest withdraws an offer that has not started: pending|accepted -> cancelled."""
    now = now or utcnow()
    matching = await _load(session, matching_id, model)
    _authorize_guest(matching, guest_id, "cancel")
    if matching.status not in CANCELLABLE_STATUSES:
        raise _reject_transition(matching, "cancel", "Only pending or accepted matchings can be cancelled")

    affected = await MatchingRepository(session).update_where(
        Matching,
        Matching.id == matching_id,
        Matching.status.in_(list(CANCELLABLE_STATUSES)),
        values={"status": STATUS_CANCELLED, "updated_at": now},
    )
    if affected == 0:
        raise _reject_transition(matching, "cancel", "Only pending or accepted matchings can be cancelled")

    logger.info("Matching %s cancelled by guest %s", matching_id, guest_id)
    return await _load(session, matching_id)


async def close_recruiting(
    session: AsyncSession,
    matching_id: str,
    guest_id: str,
    *,
    now: Optional[datetime] = None,
) -> GroupMatching:
    """Guest stops recruiting for a group offer: pending -> accepted.

    Needs at least one accepted participant. Pending participants can no
    longer respond afterwards. start_matching only accepts a group offer once
    this has moved it to accepted, so closing recruiting is what unlocks the session.
    """
    now = now or utcnow()
    matching = await _load(session, matching_id, GroupMatching)
    _authorize_guest(matching, guest_id, "close recruiting for")
    if matching.status != STATUS_PENDING or matching.recruiting_ended_at is not None:
        raise _reject_transition(matching, "close recruiting for", "This matching is no longer recruiting")

    accepted_count = await session.scalar(
        select(func.count(MatchingParticipant.id))
        .where(MatchingParticipant.matching_id == matching_id)
        .where(MatchingParticipant.status == PARTICIPANT_ACCEPTED)
    )
    if not accepted_count:
        raise _reject_transition(
            matching, "close recruiting for", "No cast has accepted this matching yet"
        )

    affected = await MatchingRepository(session).update_where(
        GroupMatching,
        GroupMatching.id == matching_id,
        GroupMatching.status == STATUS_PENDING,
        GroupMatching.recruiting_ended_at.is_(None),
        values={"status": STATUS_ACCEPTED, "recruiting_ended_at": now, "updated_at": now},
    )
    if affected == 0:
        raise _reject_transition(matching, "close recruiting for", "This matching is no longer recruiting")

    logger.info(
        "Group matching %s closed recruiting with %d accepted cast(s)", matching_id, accepted_count
    )
    return await _load(session, matching_id)


async def attach_chat_room(
    session: AsyncSession,
    matching_id: str,
    chat_room_id: str,
    *,
    now: Optional[datetime] = None,
) -> Matching:
    """Record the chat room created for a matching. Set once; never overwritten."""
    if not chat_room_id:
        raise ValidationError("chat_room_id is required")
    now = now or utcnow()
    affected = await MatchingRepository(session).update_where(
        Matching,
        Matching.id == matching_id,
        Matching.chat_room_id.is_(None),
        values={"chat_room_id": chat_room_id, "updated_at": now},
    )
    matching = await _load(session, matching_id)
    if affected == 0:
        raise InvalidStateError("A chat room is already attached to this matching")
    logger.info("Chat room %s attached to matching %s", chat_room_id, matching_id)
    return matching
