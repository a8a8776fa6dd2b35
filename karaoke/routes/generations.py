"""Generation history endpoints for the signed-in user."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.auth import get_current_user
from karaoke.database import get_db
from karaoke.exceptions import NotFoundError, PersistenceError
from karaoke.models import User
from karaoke.schemas import (
    GenerationListResponse,
    GenerationResponse,
    GenerationStatsResponse,
)
from karaoke.services.generation_service import (
    GenerationFilters,
    GenerationSort,
    get_generation_by_id,
    get_recent_generations,
    get_user_generation_stats,
    get_user_generations,
)
from karaoke.services.pagination import build_page_pagination, resolve_page_params

router = APIRouter(prefix="/api/generations", tags=["generations"])


@router.get("", response_model=GenerationListResponse)
async def list_generations(
    page: str | None = Query(None),
    limit: str | None = Query(None),
    sort_field: Literal["created_at", "friendship_score"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    era: str | None = Query(None),
    genre: str | None = Query(None),
    min_score: int | None = Query(None),
    max_score: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """The caller's generations, newest first unless sorted otherwise."""
    resolved_page, resolved_limit = resolve_page_params(page, limit)
    filters = GenerationFilters(
        user_id=user.id,
        era=era,
        genre=genre,
        min_score=min_score,
        max_score=max_score,
    )

    try:
        rows, total = await get_user_generations(
            db,
            filters,
            GenerationSort(field=sort_field, order=sort_order),
            page=resolved_page,
            limit=resolved_limit,
        )
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load generations")

    return GenerationListResponse(
        data=[GenerationResponse.model_validate(g) for g in rows],
        pagination=build_page_pagination(resolved_page, resolved_limit, total),
    )


@router.get("/stats", response_model=GenerationStatsResponse)
async def generation_stats(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return await get_user_generation_stats(db, user.id)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load generations")


@router.get("/recent", response_model=list[GenerationResponse])
async def recent_generations(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        rows = await get_recent_generations(db, user.id, limit=limit)
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load generations")
    return [GenerationResponse.model_validate(g) for g in rows]


@router.get("/{generation_id}", response_model=GenerationResponse)
async def get_generation(
    generation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """A single generation. Other users' generations are reported as missing."""
    try:
        generation = await get_generation_by_id(db, generation_id, user.id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Generation not found")
    except PersistenceError:
        raise HTTPException(status_code=500, detail="Could not load generations")
    return GenerationResponse.model_validate(generation)
