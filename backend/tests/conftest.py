# Ensure backend is at sys.path[0] when pytest runs (from repo root or from backend dir)
import asyncio
import sys
from pathlib import Path

import pytest

_tests_dir = Path(__file__).resolve().parent
_backend = _tests_dir.parent
_str_backend = str(_backend)
if sys.path[0:1] != [_str_backend]:
    sys.path.insert(0, _str_backend)

from core.database import dispose_database, get_database_manager, init_database  # noqa: E402
from models.base import Base  # noqa: E402
import models  # noqa: E402,F401


@pytest.fixture
def test_db(tmp_path):
    """File-backed SQLite per test so concurrent sessions see each other's commits.

    Yields the initialized DatabaseManager.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'matching_test.db'}"

    async def _setup():
        await init_database(url)
        engine = get_database_manager().engine
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        # Drop pooled connections opened on this loop; the test runs on its own.
        await engine.dispose()

    async def _teardown():
        await dispose_database()

    asyncio.run(_setup())
    yield get_database_manager()
    asyncio.run(_teardown())
