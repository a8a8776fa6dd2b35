"""Leaderboard endpoints: the public ranking and the caller's own standing."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.auth import get_current_user
from karaoke.database import get_db
from karaoke.exceptions import PersistenceError
from karaoke.logging_config import get_logger
from karaoke.models import User
from karaoke.schemas import LeaderboardResponse, UserStandingResponse
from karaoke.services.leaderboard_service import LeaderboardService
from karaoke.services.pagination import (
    build_leaderboard_pagination,
    resolve_leaderboard_params,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    # Raw strings: malformed values fall back to defaults instead of a 422.
    limit: str | None = Query(None),
    offset: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Users ranked by total friendship score."""
    resolved_limit, resolved_offset = resolve_leaderboard_params(limit, offset)

    try:
        page = await LeaderboardService(db).get_leaderboard_page(resolved_limit, resolved_offset)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load leaderboard")

    return LeaderboardResponse(
        entries=page.entries,
        pagination=build_leaderboard_pagination(resolved_limit, resolved_offset, page.total),
    )


@router.get("/me", response_model=UserStandingResponse)
async def get_my_standing(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The signed-in user's rank. Users without scores are reported as unranked."""
    try:
        standing = await LeaderboardService(db).get_user_standing(user.id)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load leaderboard")

    if standing is None:
        return UserStandingResponse(ranked=False)
    return UserStandingResponse(
        ranked=True,
        rank=standing.rank,
        total_score=standing.total_score,
        ranked_users=standing.ranked_users,
    )
