"""
Deterministic demo cast directory for local development.
Idempotent: insert by stable PK, never overwrite. No network calls.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from models.cast_profile import CastProfile


# Stable ids so seeded casts can be referenced from curl / frontend fixtures.
CASTS: List[Dict[str, Any]] = [
    {"id": "cast-aoi", "display_name": "Aoi", "rank": 1, "birth_date": date(2001, 4, 12)},
    {"id": "cast-hina", "display_name": "Hina", "rank": 2, "birth_date": date(1998, 11, 3)},
    {"id": "cast-mei", "display_name": "Mei", "rank": 3, "birth_date": date(1995, 2, 28)},
    {"id": "cast-rin", "display_name": "Rin", "rank": 4, "birth_date": date(1990, 7, 19)},
    {"id": "cast-yui", "display_name": "Yui", "rank": 1, "birth_date": date(2004, 1, 30)},
    {"id": "cast-saki", "display_name": "Saki", "rank": 2, "birth_date": date(1986, 9, 9), "is_active": False},
]


async def seed_casts(session: AsyncSession) -> Dict[str, int]:
    """Insert missing demo casts. Returns {"casts_inserted": n, "casts_existing": m}."""
    counts = {"casts_inserted": 0, "casts_existing": 0}
    for row in CASTS:
        existing = await session.get(CastProfile, row["id"])
        if existing is not None:
            counts["casts_existing"] += 1
            continue
        session.add(CastProfile(
            id=row["id"],
            display_name=row["display_name"],
            rank=row["rank"],
            birth_date=row["birth_date"],
            is_active=row.get("is_active", True),
        ))
        counts["casts_inserted"] += 1
    return counts
