"""
Detect a stale local SQLite schema: tables that exist but lack columns the models define.
create_schema uses it to exit non-zero up front instead of failing on the first INSERT.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Tuple

from sqlalchemy import inspect

from models.base import Base

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def missing_columns(sync_engine: "Engine") -> Dict[str, List[str]]:
    """Map table name -> sorted missing column names, for every mapped table that already exists."""
    inspector = inspect(sync_engine)
    missing: Dict[str, List[str]] = {}
    for table_name, table in Base.metadata.tables.items():
        if not inspector.has_table(table_name):
            continue
        current = {c["name"] for c in inspector.get_columns(table_name)}
        gap = set(table.columns.keys()) - current
        if gap:
            missing[table_name] = sorted(gap)
    return missing


def check_sqlite_schema_mismatch(sync_engine: "Engine") -> Tuple[bool, str]:
    """Return (has_mismatch, message). has_mismatch True means the local schema is stale."""
    missing = missing_columns(sync_engine)
    if not missing:
        return False, ""
    detail = "; ".join(f"{name!r} missing {cols}" for name, cols in sorted(missing.items()))
    return True, (
        f"Stale schema: {detail}. "
        "Run: python -m tools.reset_local_db (from backend dir) to drop the local DB and recreate it."
    )
