from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from services.review_lookup import NullReviewLookup, ReviewLookup
from .database import DatabaseManager, get_database_manager

ROLE_GUEST = "guest"
ROLE_CAST = "cast"
ROLES = (ROLE_GUEST, ROLE_CAST)

_default_review_lookup = NullReviewLookup()


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity resolved by the upstream auth layer."""

    id: str
    role: str


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding an AsyncSession from the DatabaseManager."""
    manager = get_database_manager()
    async with manager.session() as session:
        yield session


def get_db_manager() -> DatabaseManager:
    """FastAPI dependency for handlers that own their transaction."""
    return get_database_manager()


def get_review_lookup() -> ReviewLookup:
    """Review subsystem adapter; overridden where a real one is wired in."""
    return _default_review_lookup


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> CurrentUser:
    """Identity headers set by the auth proxy. Missing id -> 401, unknown role -> 403."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    if x_user_role not in ROLES:
        raise HTTPException(status_code=403, detail="Unknown user role")
    return CurrentUser(id=x_user_id, role=x_user_role)


async def require_guest(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != ROLE_GUEST:
        raise HTTPException(status_code=403, detail="Only guests can use this endpoint")
    return user


async def require_cast(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != ROLE_CAST:
        raise HTTPException(status_code=403, detail="Only casts can use this endpoint")
    return user
