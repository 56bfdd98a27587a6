"""DatabaseManager.run_transaction: whole-unit retry on transient OperationalError."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from models.cast_profile import CastProfile

from factories import born, count_rows


def _locked() -> OperationalError:
    return OperationalError("UPDATE matchings", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_retry_discards_failed_attempt(test_db):
    attempts = []

    async def work(session):
        attempts.append(1)
        session.add(CastProfile(id=f"cast-{len(attempts)}", display_name="x", birth_date=born(30)))
        await session.flush()
        if len(attempts) == 1:
            raise _locked()
        return "done"

    assert await test_db.run_transaction(work, attempts=3) == "done"
    assert len(attempts) == 2
    async with test_db.session() as session:
        assert await session.get(CastProfile, "cast-1") is None
        assert await session.get(CastProfile, "cast-2") is not None


@pytest.mark.asyncio
async def test_retry_gives_up_after_attempts(test_db):
    attempts = []

    async def work(session):
        attempts.append(1)
        raise _locked()

    with pytest.raises(OperationalError):
        await test_db.run_transaction(work, attempts=3)
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried(test_db):
    attempts = []

    async def work(session):
        attempts.append(1)
        session.add(CastProfile(id="cast-x", display_name="x", birth_date=born(30)))
        await session.flush()
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await test_db.run_transaction(work, attempts=3)
    assert len(attempts) == 1
    assert await count_rows(test_db, CastProfile) == 0
