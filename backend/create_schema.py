"""Create matching tables. Usage: python create_schema.py (from backend dir)."""

import asyncio
import sys

from core.config import get_settings
from core.database import init_database, dispose_database, get_database_manager
from models.base import Base
import models  # noqa: F401
from tools.reset_local_db import sqlite_file_path
from tools.schema_check import check_sqlite_schema_mismatch


async def main() -> int:
    settings = get_settings()
    await init_database(settings.database_url)
    engine = get_database_manager().engine

    if sqlite_file_path(settings.database_url) is not None:
        async with engine.connect() as conn:
            has_mismatch, message = await conn.run_sync(check_sqlite_schema_mismatch)
        if has_mismatch:
            print(f"Schema mismatch: {message}", file=sys.stderr)
            await dispose_database()
            return 1

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await dispose_database()
    print("schema ok")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
