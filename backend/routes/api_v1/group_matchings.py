"""Group matching endpoints: one guest offer fanned out to many casts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import DatabaseManager
from core.dependencies import (
    CurrentUser,
    get_db_manager,
    get_db_session,
    require_cast,
    require_guest,
)
from models.matching import GroupMatching
from services import query_service
from services.offer_service import create_group_matching_with_retry
from services.response_service import respond_to_group_matching
from services.session_service import (
    cancel_matching,
    close_recruiting,
    complete_matching,
    extend_matching,
    start_matching,
)

from .serializers import group_to_dict, participation_to_dict, summary_to_dict

router = APIRouter(prefix="/group-matchings", tags=["group-matchings"])


class CreateGroupMatchingBody(BaseModel):
    """Body for POST /group-matchings/guest. Exactly one of proposed_date / offset_minutes."""

    requested_cast_count: int = Field(..., description="1..10 casts billed")
    proposed_date: Optional[datetime] = None
    offset_minutes: Optional[int] = None
    duration_minutes: int
    location: str
    min_age: Optional[int] = Field(default=None, description="Inclusive, 18..99")
    max_age: Optional[int] = Field(default=None, description="Inclusive, 18..99")


class RespondBody(BaseModel):
    response: Literal["accepted", "rejected"]


class ExtendBody(BaseModel):
    extension_minutes: int


@router.post("/guest", status_code=201, summary="Create a group offer and send it to eligible casts")
async def post_group_matching(
    body: CreateGroupMatchingBody,
    user: CurrentUser = Depends(require_guest),
    manager: DatabaseManager = Depends(get_db_manager),
) -> dict:
    result = await create_group_matching_with_retry(
        manager,
        guest_id=user.id,
        requested_cast_count=body.requested_cast_count,
        proposed_date=body.proposed_date,
        offset_minutes=body.offset_minutes,
        duration_minutes=body.duration_minutes,
        location=body.location,
        min_age=body.min_age,
        max_age=body.max_age,
    )
    return {
        "success": True,
        "group_matching": group_to_dict(result.matching),
        "participant_count": result.participant_count,
    }


@router.get("/guest", summary="Guest's group offers with participant counts")
async def get_guest_group_matchings(
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    summaries = await query_service.list_guest_group_matchings(session, user.id)
    return {"success": True, "group_matchings": [summary_to_dict(s) for s in summaries]}


@router.patch("/guest/{matching_id}/close-recruiting", summary="Stop recruiting and confirm accepted casts")
async def patch_close_recruiting(
    matching_id: str,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await close_recruiting(session, matching_id, user.id)
    return {"success": True, "group_matching": group_to_dict(matching)}


@router.patch("/guest/{matching_id}/extend", summary="Extend a running group session")
async def patch_extend(
    matching_id: str,
    body: ExtendBody,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await extend_matching(
        session, matching_id, user.id, body.extension_minutes, model=GroupMatching
    )
    return {"success": True, "group_matching": group_to_dict(matching)}


@router.patch("/guest/{matching_id}/cancel", summary="Cancel a group offer that has not started")
async def patch_cancel(
    matching_id: str,
    user: CurrentUser = Depends(require_guest),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await cancel_matching(session, matching_id, user.id, model=GroupMatching)
    return {"success": True, "group_matching": group_to_dict(matching)}


@router.get("/cast", summary="Cast's live group participations")
async def get_cast_group_matchings(
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    rows = await query_service.list_cast_group_participations(session, user.id)
    return {"success": True, "group_matchings": [participation_to_dict(r) for r in rows]}


@router.patch("/cast/{matching_id}/respond", summary="Accept or reject a group invitation")
async def patch_respond(
    matching_id: str,
    body: RespondBody,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await respond_to_group_matching(session, matching_id, user.id, body.response)
    return {"success": True, "group_matching": group_to_dict(matching)}


@router.patch("/cast/{matching_id}/start", summary="Start a group session")
async def patch_start(
    matching_id: str,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await start_matching(session, matching_id, user.id, model=GroupMatching)
    return {"success": True, "group_matching": group_to_dict(matching)}


@router.patch("/cast/{matching_id}/complete", summary="Complete a group session")
async def patch_complete(
    matching_id: str,
    user: CurrentUser = Depends(require_cast),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    matching = await complete_matching(session, matching_id, user.id, model=GroupMatching)
    return {"success": True, "group_matching": group_to_dict(matching)}
