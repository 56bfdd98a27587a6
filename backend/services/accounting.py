"""
Point accounting: duration x hourly rate -> points.

Pure functions, no state. The same rounding rule prices the initial offer and
every extension, so each call rounds on its own (no carry between calls).
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

# Points per hour by cast rank (1 = lowest). Rank 1 is the platform base rate.
RANK_HOURLY_RATES: Dict[int, int] = {
    1: 3000,
    2: 4000,
    3: 5000,
    4: 7000,
    5: 10000,
}
BASE_RANK = 1


def points(duration_minutes: int, hourly_rate: int) -> int:
    """round(duration_minutes / 60 * hourly_rate), half-up, as an integer."""
    if duration_minutes < 0:
        raise ValueError("duration_minutes must be >= 0")
    if hourly_rate < 0:
        raise ValueError("hourly_rate must be >= 0")
    raw = Decimal(duration_minutes) * Decimal(hourly_rate) / Decimal(60)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def group_points(duration_minutes: int, base_hourly_rate: int, cast_count: int) -> int:
    """Per-cast points at the base rate, times the number of casts billed."""
    if cast_count < 1:
        raise ValueError("cast_count must be >= 1")
    return points(duration_minutes, base_hourly_rate) * cast_count


def hourly_rate_for_rank(rank: int) -> int:
    """Hourly rate for a cast rank; unknown ranks are billed at the base rank."""
    return RANK_HOURLY_RATES.get(rank, RANK_HOURLY_RATES[BASE_RANK])
