"""ORM row -> JSON-ready dict for the matching endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from models.matching import GroupMatching, Matching, SoloMatching
from models.matching_participant import MatchingParticipant
from services.dates import as_utc
from services.query_service import CastParticipation, GroupMatchingSummary


def _iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value is not None else None


def _common(m: Matching) -> Dict[str, Any]:
    return {
        "id": m.id,
        "kind": m.kind,
        "guest_id": m.guest_id,
        "chat_room_id": m.chat_room_id,
        "status": m.status,
        "proposed_date": _iso(m.proposed_date),
        "proposed_duration_minutes": m.proposed_duration_minutes,
        "proposed_location": m.proposed_location,
        "hourly_rate": m.hourly_rate,
        "total_points": m.total_points,
        "started_at": _iso(m.started_at),
        "scheduled_end_at": _iso(m.scheduled_end_at),
        "actual_end_at": _iso(m.actual_end_at),
        "extension_minutes": m.extension_minutes,
        "extension_points": m.extension_points,
        "created_at": _iso(m.created_at),
        "updated_at": _iso(m.updated_at),
    }


def solo_to_dict(m: SoloMatching) -> Dict[str, Any]:
    data = _common(m)
    data["cast_id"] = m.cast_id
    data["cast_responded_at"] = _iso(m.cast_responded_at)
    return data


def group_to_dict(m: GroupMatching) -> Dict[str, Any]:
    data = _common(m)
    data["requested_cast_count"] = m.requested_cast_count
    data["recruiting_ended_at"] = _iso(m.recruiting_ended_at)
    return data


def participant_to_dict(p: MatchingParticipant) -> Dict[str, Any]:
    return {
        "id": p.id,
        "matching_id": p.matching_id,
        "cast_id": p.cast_id,
        "status": p.status,
        "responded_at": _iso(p.responded_at),
        "joined_at": _iso(p.joined_at),
    }


def summary_to_dict(s: GroupMatchingSummary) -> Dict[str, Any]:
    data = group_to_dict(s.matching)
    data["participant_counts"] = dict(s.participant_counts)
    data["participant_total"] = s.participant_total
    data["accepted_count"] = s.accepted_count
    return data


def participation_to_dict(c: CastParticipation) -> Dict[str, Any]:
    data = group_to_dict(c.matching)
    data["participant"] = participant_to_dict(c.participant)
    return data
