"""
Reset the local SQLite database: delete the file and recreate the matching schema.
Dev only; refuses non-SQLite and in-memory URLs.
Usage: python -m tools.reset_local_db (from backend dir).
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from core.config import get_settings
from core.database import init_database, dispose_database, get_database_manager
from models.base import Base
import models  # noqa: F401 - register all models


def sqlite_file_path(database_url: str) -> Optional[Path]:
    """File path behind a SQLite URL, or None for in-memory / non-SQLite / unparsable URLs."""
    url = (database_url or "").strip()
    if not url.startswith("sqlite") or ":memory:" in url:
        return None
    try:
        db = (make_url(url).database or "").strip()
    except ArgumentError:
        return None
    return Path(db) if db else None


async def _main() -> int:
    settings = get_settings()
    path = sqlite_file_path(settings.database_url)
    if path is None:
        print("Refusing: DATABASE_URL is not a SQLite file. Reset is for local dev databases only.", file=sys.stderr)
        return 1

    path = path.resolve()
    for candidate in (path, path.with_name(path.name + "-wal"), path.with_name(path.name + "-shm")):
        if candidate.exists():
            try:
                candidate.unlink()
            except OSError as e:
                print(f"Failed to delete {candidate}: {e}", file=sys.stderr)
                return 1

    await init_database(settings.database_url)
    engine = get_database_manager().engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await dispose_database()

    print(f"OK: reset {path}")
    return 0


def main() -> None:
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
