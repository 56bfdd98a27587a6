"""Solo matching endpoints: guest creates/extends/cancels, cast responds/starts/completes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import (
    CurrentUser,
    get_db_session,
    get_review_lookup,
    require_cast,
    require_guest,
)
from models.matching import SoloMatching
from services import query_service
from services.offer_service import create_solo_matching
from services.response_service import respond_to_solo_matching
from services.review_lookup import ReviewLookup
from services.session_service import (
    cancel_matching,
    complete_matching,
    extend_matching,
    start_matching,
)

from .serializers import solo_to_dict

router = APIRouter(prefix="/solo-matchings", tags=["solo-matchings"])


class CreateSoloMatchingBody(BaseModel):
    """Body for POST /solo-matchings/guest. Exactly one of proposed_date / offset_minutes."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cast_id": "5f0c6a1e-0000-4000-8000-000000000001",
                "offset_minutes": 60,
                "duration_minutes": 120,
                "location": "Shibuya",
            }
        }
    )

    cast_id: str = Field(..., min_length=1)
    proposed_date: Optional[datetime] = Field(default=None, description="Absolute start time (ISO 8601)")
    offset_minutes: Optional[int] = Field(default=None, description="Start this many minutes from now")
    duration_minutes: int = Field(..., description="30..480")
    location: str
    hourly_rate: Optional[int] = Field(default=None, description="Defaults to the cast's rank rate")


class RespondBody(BaseModel):
    response: Literal["accepted", "rejected"]


class ExtendBody(BaseModel):
    extension_minutes: int = Field(..., description="Positive multiple of 30")


@router.post("/guest", status_code=201, summary="Create a solo offer")
async def post_solo_matching(
    body: CreateSoloMatchingBody,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await create_solo_matching(
        session,
        guest_id=user.id,
        cast_id=body.cast_id,
        proposed_date=body.proposed_date,
        offset_minutes=body.offset_minutes,
        duration_minutes=body.duration_minutes,
        location=body.location,
        hourly_rate=body.hourly_rate,
    )
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.get("/guest", summary="Guest's solo offers that are not completed")
async def get_guest_solo_matchings(
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matchings = await query_service.list_guest_solo_matchings(session, user.id)
    return {"success": True, "solo_matchings": [solo_to_dict(m) for m in matchings]}


@router.get("/guest/completed", summary="Completed solo matchings not yet reviewed")
async def get_completed_solo_matchings(
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
    reviews: ReviewLookup = Depends(get_review_lookup),
) -> dict:
    matchings = await query_service.list_completed_unreviewed(session, user.id, reviews)
    return {"success": True, "solo_matchings": [solo_to_dict(m) for m in matchings]}


@router.get("/guest/pending/{cast_id}", summary="Open offer from the guest to a cast")
async def get_pending_offer(
    cast_id: str,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await query_service.get_pending_offer_for_cast(session, user.id, cast_id)
    return {"success": True, "solo_matching": solo_to_dict(matching) if matching else None}


@router.get("/guest/{matching_id}/reviewable", summary="Check a matching can be reviewed by the guest")
async def get_reviewable(
    matching_id: str,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
    reviews: ReviewLookup = Depends(get_review_lookup),
) -> dict:
    matching = await query_service.get_reviewable_matching(session, matching_id, user.id, reviews)
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.patch("/guest/{matching_id}/extend", summary="Extend a running session")
async def patch_extend(
    matching_id: str,
    body: ExtendBody,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await extend_matching(
        session, matching_id, user.id, body.extension_minutes, model=SoloMatching
    )
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.patch("/guest/{matching_id}/cancel", summary="Cancel a pending or accepted offer")
async def patch_cancel(
    matching_id: str,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await cancel_matching(session, matching_id, user.id, model=SoloMatching)
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.get("/cast", summary="Cast's open offers and running sessions")
async def get_cast_solo_matchings(
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    offers = await query_service.list_cast_solo_matchings(session, user.id)
    sessions = await query_service.list_cast_solo_sessions(session, user.id)
    return {
        "success": True,
        "solo_matchings": [solo_to_dict(m) for m in offers],
        "sessions": [solo_to_dict(m) for m in sessions],
    }


@router.patch("/cast/{matching_id}/respond", summary="Accept or reject a solo offer")
async def patch_respond(
    matching_id: str,
    body: RespondBody,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await respond_to_solo_matching(session, matching_id, user.id, body.response)
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.patch("/cast/{matching_id}/start", summary="Start an accepted session")
async def patch_start(
    matching_id: str,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await start_matching(session, matching_id, user.id, model=SoloMatching)
    return {"success": True, "solo_matching": solo_to_dict(matching)}


@router.patch("/cast/{matching_id}/complete", summary="Complete a running session")
async def patch_complete(
    matching_id: str,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await complete_matching(session, matching_id, user.id, model=SoloMatching)
    return {"success": True, "solo_matching": solo_to_dict(matching)}
