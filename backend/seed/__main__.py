"""CLI entry: seed demo casts. Usage: python -m seed (from backend dir)."""
from __future__ import annotations

import asyncio
import sys

from core.config import get_settings
from core.database import dispose_database, get_database_manager, init_database
from seed.seed_casts import seed_casts


async def _main() -> int:
    settings = get_settings()
    await init_database(settings.database_url)
    manager = get_database_manager()
    async with manager.session() as session:
        counts = await seed_casts(session)
    await dispose_database()
    print("Seed complete:", counts)
    return 0


def main() -> None:
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
