"""
Offer creation for solo and group matchings.

Group offers snapshot the eligible cast set once and insert the matching row
plus one pending participant per cast in the caller's transaction; the
``*_with_retry`` variant owns the transaction and re-runs it from scratch on a
transient database failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.database import DatabaseManager
from core.errors import NoEligibleCastsError, NotFoundError, ValidationError
from models.base import utcnow
from models.matching import GroupMatching, SoloMatching, STATUS_PENDING
from models.matching_participant import MatchingParticipant, PARTICIPANT_PENDING
from repositories.cast_profile_repo import CastProfileRepository
from repositories.matching_repo import MatchingRepository
from repositories.participant_repo import ParticipantRepository
from services import accounting
from services.dates import as_utc, resolve_proposed_date, years_before

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 30
MAX_DURATION_MINUTES = 480
MAX_LOCATION_LENGTH = 200
MIN_REQUESTED_CASTS = 1
MAX_REQUESTED_CASTS = 10
MIN_AGE = 18
MAX_AGE = 99


@dataclass
class GroupOfferResult:
    """Created group offer and the number of casts it was sent to."""

    matching: GroupMatching
    participant_count: int


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_schedule(
    proposed_date: Optional[datetime],
    offset_minutes: Optional[int],
    duration_minutes: int,
    location: str,
    now: datetime,
) -> datetime:
    """Validate fields shared by solo and group offers; return the resolved proposed date."""
    if proposed_date is not None and offset_minutes is not None:
        raise ValidationError("Specify either proposed_date or offset_minutes, not both")
    if offset_minutes is not None and (not _is_int(offset_minutes) or offset_minutes <= 0):
        raise ValidationError("offset_minutes must be a positive integer")
    if proposed_date is not None and as_utc(proposed_date) <= now:
        raise ValidationError("proposed_date must be in the future")
    resolved = resolve_proposed_date(proposed_date, offset_minutes, now)
    if resolved is None:
        raise ValidationError("Either proposed_date or offset_minutes is required")

    if not _is_int(duration_minutes) or not (
        MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES
    ):
        raise ValidationError(
            f"duration must be an integer between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )
    if not location or not location.strip():
        raise ValidationError("location is required")
    if len(location) > MAX_LOCATION_LENGTH:
        raise ValidationError(f"location must be at most {MAX_LOCATION_LENGTH} characters")
    return resolved


def _validate_age_range(min_age: Optional[int], max_age: Optional[int]) -> None:
    for name, value in (("min_age", min_age), ("max_age", max_age)):
        if value is None:
            continue
        if not _is_int(value) or not (MIN_AGE <= value <= MAX_AGE):
            raise ValidationError(f"{name} must be an integer between {MIN_AGE} and {MAX_AGE}")
    if min_age is not None and max_age is not None and min_age > max_age:
        raise ValidationError("min_age must not exceed max_age")


async def create_solo_matching(
    session: AsyncSession,
    *,
    guest_id: str,
    cast_id: str,
    duration_minutes: int,
    location: str,
    proposed_date: Optional[datetime] = None,
    offset_minutes: Optional[int] = None,
    hourly_rate: Optional[int] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> SoloMatching:
    """Create a pending one-to-one offer.

    When ``hourly_rate`` is omitted it is derived from the cast's rank. The
    total is priced once here and never changes afterwards.
    """
    settings = settings or get_settings()
    now = as_utc(now) if now is not None else utcnow()
    resolved_date = _validate_schedule(proposed_date, offset_minutes, duration_minutes, location, now)

    cast = await CastProfileRepository(session).get_by_id(cast_id)
    if cast is None:
        raise NotFoundError(f"Cast not found: {cast_id}")
    if not cast.is_active:
        raise ValidationError(f"Cast is not accepting offers: {cast_id}")

    rate = hourly_rate if hourly_rate is not None else accounting.hourly_rate_for_rank(cast.rank)
    if not _is_int(rate) or rate < settings.min_hourly_rate:
        raise ValidationError(f"hourly_rate must be an integer >= {settings.min_hourly_rate}")

    matching = SoloMatching(
        guest_id=guest_id,
        cast_id=cast_id,
        chat_room_id=None,
        status=STATUS_PENDING,
        proposed_date=resolved_date,
        proposed_duration_minutes=duration_minutes,
        proposed_location=location,
        hourly_rate=rate,
        requested_cast_count=1,
        total_points=accounting.points(duration_minutes, rate),
        extension_minutes=0,
        extension_points=0,
        created_at=now,
        updated_at=now,
    )
    await MatchingRepository(session).add(matching)
    await session.flush()
    logger.info(
        "Solo offer %s created: guest=%s cast=%s duration=%d rate=%d total=%d",
        matching.id, guest_id, cast_id, duration_minutes, rate, matching.total_points,
    )
    return matching


async def snapshot_eligible_casts(
    session: AsyncSession,
    today: date,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
) -> List[str]:
    """Ids of active casts whose age on ``today`` lies in [min_age, max_age]."""
    born_on_or_before = years_before(today, min_age) if min_age is not None else None
    born_after = years_before(today, max_age + 1) if max_age is not None else None
    casts = await CastProfileRepository(session).list_active(
        born_on_or_before=born_on_or_before, born_after=born_after
    )
    return [c.id for c in casts]


async def insert_group_offer(
    session: AsyncSession,
    matching: GroupMatching,
    cast_ids: Sequence[str],
) -> GroupOfferResult:
    """Insert the offer row and one pending participant per cast from a fixed snapshot."""
    await MatchingRepository(session).add(matching)
    await session.flush()
    participants = [
        MatchingParticipant(
            matching_id=matching.id,
            cast_id=cast_id,
            status=PARTICIPANT_PENDING,
            created_at=matching.created_at,
            updated_at=matching.created_at,
        )
        for cast_id in cast_ids
    ]
    await ParticipantRepository(session).add_all(participants)
    return GroupOfferResult(matching=matching, participant_count=len(participants))


async def create_group_matching(
    session: AsyncSession,
    *,
    guest_id: str,
    requested_cast_count: int,
    duration_minutes: int,
    location: str,
    proposed_date: Optional[datetime] = None,
    offset_minutes: Optional[int] = None,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> GroupOfferResult:
    """Create a pending one-to-many offer and fan it out to every eligible cast.

    Raises NoEligibleCastsError before writing anything when the snapshot is
    empty. The returned ``participant_count`` may differ from
    ``requested_cast_count``.
    """
    settings = settings or get_settings()
    now = as_utc(now) if now is not None else utcnow()
    resolved_date = _validate_schedule(proposed_date, offset_minutes, duration_minutes, location, now)
    if not _is_int(requested_cast_count) or not (
        MIN_REQUESTED_CASTS <= requested_cast_count <= MAX_REQUESTED_CASTS
    ):
        raise ValidationError(
            f"requested_cast_count must be an integer between {MIN_REQUESTED_CASTS} and {MAX_REQUESTED_CASTS}"
        )
    _validate_age_range(min_age, max_age)

    cast_ids = await snapshot_eligible_casts(session, now.date(), min_age, max_age)
    if not cast_ids:
        logger.warning(
            "Group offer rejected for guest=%s: no eligible casts (min_age=%s max_age=%s)",
            guest_id, min_age, max_age,
        )
        raise NoEligibleCastsError("No active casts match the requested conditions")

    base_rate = settings.base_hourly_rate
    matching = GroupMatching(
        guest_id=guest_id,
        chat_room_id=None,
        status=STATUS_PENDING,
        proposed_date=resolved_date,
        proposed_duration_minutes=duration_minutes,
        proposed_location=location,
        hourly_rate=base_rate,
        requested_cast_count=requested_cast_count,
        total_points=accounting.group_points(duration_minutes, base_rate, requested_cast_count),
        extension_minutes=0,
        extension_points=0,
        created_at=now,
        updated_at=now,
    )
    result = await insert_group_offer(session, matching, cast_ids)
    logger.info(
        "Group offer %s created: guest=%s requested=%d participants=%d total=%d",
        matching.id, guest_id, requested_cast_count, result.participant_count, matching.total_points,
    )
    return result


async def create_group_matching_with_retry(
    manager: DatabaseManager,
    *,
    attempts: Optional[int] = None,
    settings: Optional[Settings] = None,
    **params,
) -> GroupOfferResult:
    """Run create_group_matching in its own transaction, retrying the whole unit on transient failure."""
    settings = settings or get_settings()
    attempts = attempts if attempts is not None else settings.fanout_retry_attempts

    async def _work(session: AsyncSession) -> GroupOfferResult:
        return await create_group_matching(session, settings=settings, **params)

    return await manager.run_transaction(_work, attempts=attempts)
