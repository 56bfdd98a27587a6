"""Session lifecycle: start, extend, complete, cancel, recruiting closure, chat room."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from models.matching import (
    GroupMatching,
    SoloMatching,
    STATUS_ACCEPTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
)
from models.matching_participant import (
    PARTICIPANT_COMPLETED,
    PARTICIPANT_JOINED,
    PARTICIPANT_PENDING,
    PARTICIPANT_REJECTED,
)
from repositories.participant_repo import ParticipantRepository
from services.dates import as_utc
from services.response_service import respond_to_group_matching, respond_to_solo_matching
from services.session_service import (
    attach_chat_room,
    cancel_matching,
    close_recruiting,
    complete_matching,
    extend_matching,
    start_matching,
    validate_extension_minutes,
)

from factories import GUEST, OTHER_GUEST, add_cast, group_offer, later, solo_offer


async def _accepted_solo(manager, cast_id="cast-a", **overrides):
    await add_cast(manager, cast_id)
    offer = await solo_offer(manager, cast_id, **overrides)
    async with manager.session() as session:
        await respond_to_solo_matching(session, offer.id, cast_id, "accepted", now=later(1))
    return offer


async def _call(manager, fn, *args, **kwargs):
    async with manager.session() as session:
        return await fn(session, *args, **kwargs)


async def _statuses(manager, matching_id):
    async with manager.session() as session:
        rows = await ParticipantRepository(session).list_for_matching(matching_id)
    return {p.cast_id: p.status for p in rows}


@pytest.mark.asyncio
async def test_solo_full_lifecycle(test_db):
    offer = await _accepted_solo(test_db)
    assert offer.total_points == 6000

    started = await _call(test_db, start_matching, offer.id, "cast-a", model=SoloMatching, now=later(60))
    assert started.status == STATUS_IN_PROGRESS
    assert as_utc(started.started_at) == later(60)
    assert as_utc(started.scheduled_end_at) - as_utc(started.started_at) == timedelta(minutes=120)

    extended = await _call(test_db, extend_matching, offer.id, "guest-1", 30, model=SoloMatching, now=later(150))
    assert extended.extension_minutes == 30
    assert extended.extension_points == 1500
    assert as_utc(extended.scheduled_end_at) == later(210)
    # the original offer total is never rewritten
    assert extended.total_points == 6000

    completed = await _call(test_db, complete_matching, offer.id, "cast-a", model=SoloMatching, now=later(210))
    assert completed.status == STATUS_COMPLETED
    assert as_utc(completed.actual_end_at) == later(210)

    with pytest.raises(InvalidStateError):
        await _call(test_db, complete_matching, offer.id, "cast-a", model=SoloMatching)


@pytest.mark.asyncio
async def test_extensions_accumulate(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    await _call(test_db, extend_matching, offer.id, GUEST, 30)
    m = await _call(test_db, extend_matching, offer.id, GUEST, 60)
    assert m.extension_minutes == 90
    assert m.extension_points == 4500
    assert as_utc(m.scheduled_end_at) == later(60 + 120 + 90)


@pytest.mark.parametrize("minutes", [15, 25, 45, 75, 0, -30])
def test_extension_must_be_positive_multiple_of_30(minutes):
    with pytest.raises(ValidationError):
        validate_extension_minutes(minutes)


@pytest.mark.asyncio
@pytest.mark.parametrize("minutes,expected_points", [(30, 1500), (60, 3000), (90, 4500), (120, 6000)])
async def test_valid_extension_amounts(test_db, minutes, expected_points):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    m = await _call(test_db, extend_matching, offer.id, GUEST, minutes)
    assert m.extension_points == expected_points


@pytest.mark.asyncio
async def test_invalid_extension_leaves_matching_untouched(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    with pytest.raises(ValidationError):
        await _call(test_db, extend_matching, offer.id, GUEST, 45)
    async with test_db.session() as session:
        m = await session.get(SoloMatching, offer.id)
    assert m.extension_minutes == 0
    assert m.extension_points == 0


@pytest.mark.asyncio
async def test_extend_before_start_rejected(test_db):
    offer = await _accepted_solo(test_db)
    with pytest.raises(InvalidStateError):
        await _call(test_db, extend_matching, offer.id, GUEST, 30)


@pytest.mark.asyncio
async def test_extend_by_other_guest_forbidden(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    with pytest.raises(ForbiddenError):
        await _call(test_db, extend_matching, offer.id, OTHER_GUEST, 30)


@pytest.mark.asyncio
async def test_start_pending_offer_rejected(test_db):
    await add_cast(test_db, "cast-a")
    offer = await solo_offer(test_db, "cast-a")
    with pytest.raises(InvalidStateError):
        await _call(test_db, start_matching, offer.id, "cast-a")


@pytest.mark.asyncio
async def test_start_by_other_cast_forbidden(test_db):
    offer = await _accepted_solo(test_db)
    await add_cast(test_db, "cast-b")
    with pytest.raises(ForbiddenError):
        await _call(test_db, start_matching, offer.id, "cast-b")


@pytest.mark.asyncio
async def test_start_twice_rejected(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a")
    with pytest.raises(InvalidStateError):
        await _call(test_db, start_matching, offer.id, "cast-a")


@pytest.mark.asyncio
async def test_complete_before_start_rejected(test_db):
    offer = await _accepted_solo(test_db)
    with pytest.raises(InvalidStateError):
        await _call(test_db, complete_matching, offer.id, "cast-a")


@pytest.mark.asyncio
async def test_wrong_kind_is_not_found(test_db):
    offer = await _accepted_solo(test_db)
    with pytest.raises(NotFoundError):
        await _call(test_db, start_matching, offer.id, "cast-a", model=GroupMatching)


@pytest.mark.asyncio
async def test_unknown_matching_not_found(test_db):
    with pytest.raises(NotFoundError):
        await _call(test_db, complete_matching, "missing", "cast-a")


@pytest.mark.asyncio
async def test_cancel_pending_and_accepted(test_db):
    await add_cast(test_db, "cast-a")
    pending = await solo_offer(test_db, "cast-a")
    m = await _call(test_db, cancel_matching, pending.id, GUEST)
    assert m.status == STATUS_CANCELLED

    accepted = await _accepted_solo(test_db, cast_id="cast-b")
    m = await _call(test_db, cancel_matching, accepted.id, GUEST)
    assert m.status == STATUS_CANCELLED


@pytest.mark.asyncio
async def test_cancel_running_session_rejected(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a")
    with pytest.raises(InvalidStateError):
        await _call(test_db, cancel_matching, offer.id, GUEST)


@pytest.mark.asyncio
async def test_cancel_by_other_guest_forbidden(test_db):
    offer = await _accepted_solo(test_db)
    with pytest.raises(ForbiddenError):
        await _call(test_db, cancel_matching, offer.id, OTHER_GUEST)


@pytest.mark.asyncio
async def test_group_lifecycle(test_db):
    for cid in ("cast-a", "cast-b", "cast-c"):
        await add_cast(test_db, cid)
    result = await group_offer(test_db, requested_cast_count=2, duration_minutes=60)
    mid = result.matching.id
    assert result.matching.total_points == 6000

    await _call(test_db, respond_to_group_matching, mid, "cast-a", "accepted")
    await _call(test_db, respond_to_group_matching, mid, "cast-b", "accepted")
    await _call(test_db, respond_to_group_matching, mid, "cast-c", "rejected")

    # still recruiting: the offer itself is pending
    with pytest.raises(InvalidStateError):
        await _call(test_db, start_matching, mid, "cast-a", model=GroupMatching)

    closed = await _call(test_db, close_recruiting, mid, GUEST, now=later(20))
    assert closed.status == STATUS_ACCEPTED
    assert as_utc(closed.recruiting_ended_at) == later(20)

    with pytest.raises(ForbiddenError):
        await _call(test_db, start_matching, mid, "cast-c", model=GroupMatching)

    started = await _call(test_db, start_matching, mid, "cast-a", model=GroupMatching, now=later(60))
    assert started.status == STATUS_IN_PROGRESS
    assert as_utc(started.scheduled_end_at) == later(120)
    assert await _statuses(test_db, mid) == {
        "cast-a": PARTICIPANT_JOINED,
        "cast-b": PARTICIPANT_JOINED,
        "cast-c": PARTICIPANT_REJECTED,
    }

    extended = await _call(test_db, extend_matching, mid, GUEST, 30, model=GroupMatching)
    # 30 min at the base rate, billed for both requested casts
    assert extended.extension_points == 3000

    completed = await _call(test_db, complete_matching, mid, "cast-b", model=GroupMatching, now=later(150))
    assert completed.status == STATUS_COMPLETED
    assert await _statuses(test_db, mid) == {
        "cast-a": PARTICIPANT_COMPLETED,
        "cast-b": PARTICIPANT_COMPLETED,
        "cast-c": PARTICIPANT_REJECTED,
    }


@pytest.mark.asyncio
async def test_close_recruiting_needs_an_accepted_cast(test_db):
    await add_cast(test_db, "cast-a")
    result = await group_offer(test_db)
    with pytest.raises(InvalidStateError):
        await _call(test_db, close_recruiting, result.matching.id, GUEST)
    assert await _statuses(test_db, result.matching.id) == {"cast-a": PARTICIPANT_PENDING}


@pytest.mark.asyncio
async def test_close_recruiting_twice_rejected(test_db):
    await add_cast(test_db, "cast-a")
    result = await group_offer(test_db)
    await _call(test_db, respond_to_group_matching, result.matching.id, "cast-a", "accepted")
    await _call(test_db, close_recruiting, result.matching.id, GUEST)
    with pytest.raises(InvalidStateError):
        await _call(test_db, close_recruiting, result.matching.id, GUEST)


@pytest.mark.asyncio
async def test_close_recruiting_by_other_guest_forbidden(test_db):
    await add_cast(test_db, "cast-a")
    result = await group_offer(test_db)
    with pytest.raises(ForbiddenError):
        await _call(test_db, close_recruiting, result.matching.id, OTHER_GUEST)


@pytest.mark.asyncio
async def test_attach_chat_room_once(test_db):
    offer = await _accepted_solo(test_db)
    m = await _call(test_db, attach_chat_room, offer.id, "room-1")
    assert m.chat_room_id == "room-1"
    with pytest.raises(InvalidStateError):
        await _call(test_db, attach_chat_room, offer.id, "room-2")
    async with test_db.session() as session:
        assert (await session.get(SoloMatching, offer.id)).chat_room_id == "room-1"


@pytest.mark.asyncio
async def test_attach_chat_room_unknown_matching(test_db):
    with pytest.raises(NotFoundError):
        await _call(test_db, attach_chat_room, "missing", "room-1")


def _split(outcomes):
    wins = [o for o in outcomes if isinstance(o, SoloMatching)]
    losses = [o for o in outcomes if isinstance(o, InvalidStateError)]
    return wins, losses


@pytest.mark.asyncio
async def test_concurrent_starts_only_one_wins(test_db):
    offer = await _accepted_solo(test_db)
    outcomes = await asyncio.gather(
        _call(test_db, start_matching, offer.id, "cast-a", model=SoloMatching),
        _call(test_db, start_matching, offer.id, "cast-a", model=SoloMatching),
        return_exceptions=True,
    )
    wins, losses = _split(outcomes)
    assert len(wins) == 1
    assert len(losses) == 1


@pytest.mark.asyncio
async def test_concurrent_duplicate_extend_bills_once(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    outcomes = await asyncio.gather(
        _call(test_db, extend_matching, offer.id, GUEST, 30, model=SoloMatching),
        _call(test_db, extend_matching, offer.id, GUEST, 30, model=SoloMatching),
        return_exceptions=True,
    )
    wins, losses = _split(outcomes)
    assert len(wins) == 1
    assert len(losses) == 1

    async with test_db.session() as session:
        m = await session.get(SoloMatching, offer.id)
    assert m.extension_minutes == 30
    assert m.extension_points == 1500


@pytest.mark.asyncio
async def test_concurrent_completes_only_one_wins(test_db):
    offer = await _accepted_solo(test_db)
    await _call(test_db, start_matching, offer.id, "cast-a", now=later(60))
    outcomes = await asyncio.gather(
        _call(test_db, complete_matching, offer.id, "cast-a", model=SoloMatching),
        _call(test_db, complete_matching, offer.id, "cast-a", model=SoloMatching),
        return_exceptions=True,
    )
    wins, losses = _split(outcomes)
    assert len(wins) == 1
    assert len(losses) == 1
