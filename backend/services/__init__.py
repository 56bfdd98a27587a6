"""Services: offer creation, cast responses, session lifecycle and read views."""

from .offer_service import create_group_matching, create_solo_matching
from .response_service import respond_to_group_matching, respond_to_solo_matching
from .session_service import complete_matching, extend_matching, start_matching

__all__ = [
    "create_solo_matching",
    "create_group_matching",
    "respond_to_solo_matching",
    "respond_to_group_matching",
    "start_matching",
    "extend_matching",
    "complete_matching",
]
