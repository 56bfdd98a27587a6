"""GET /api/v1/meta/version: service name and version."""

from __future__ import annotations

from fastapi import APIRouter

from core.config import get_settings
from version import get_version

router = APIRouter(prefix="/meta", tags=["meta"])


@router.get("/version", summary="Application version")
def meta_version() -> dict:
    return {"app": get_settings().app_name, "version": get_version()}
