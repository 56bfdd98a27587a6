"""API v1: solo and group matching endpoints."""

from fastapi import APIRouter

from .group_matchings import router as group_matchings_router
from .meta import router as meta_router
from .solo_matchings import router as solo_matchings_router

router = APIRouter(prefix="/api/v1", tags=["api_v1"])
router.include_router(solo_matchings_router)
router.include_router(group_matchings_router)
router.include_router(meta_router)

api_v1_router = router
