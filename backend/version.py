"""
Single source of version: the VERSION file at the repo root.
Served by GET /api/v1/meta/version.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_VERSION = "0.0.0"


def _version_file_path() -> Path:
    # backend/version.py -> repo root
    return Path(__file__).resolve().parent.parent / "VERSION"


def get_version() -> str:
    """First line of VERSION, or DEFAULT_VERSION when the file is missing, empty or unreadable."""
    path = _version_file_path()
    try:
        lines = path.read_text(encoding="utf-8").strip().splitlines()
    except OSError:
        return DEFAULT_VERSION
    return lines[0].strip() if lines else DEFAULT_VERSION

