"""Generation store: persistence and owner-scoped history queries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.exceptions import NotFoundError, PersistenceError
from karaoke.logging_config import get_logger
from karaoke.models import Generation
from karaoke.schemas import GenerationStatsResponse, KaraokeRequest, KaraokeResponse

logger = get_logger(__name__)

SORT_FIELDS = {
    "created_at": Generation.created_at,
    "friendship_score": Generation.friendship_score,
}


@dataclass
class GenerationFilters:
    user_id: UUID
    era: str | None = None
    genre: str | None = None
    min_score: int | None = None
    max_score: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass
class GenerationSort:
    field: Literal["created_at", "friendship_score"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


def format_result_text(response: KaraokeResponse) -> str:
    """Stored lyrics: verse, blank line, chorus."""
    return f"{response.song.verse}\n\n{response.song.chorus}"


async def save_generation(
    db: AsyncSession,
    user_id: UUID,
    request: KaraokeRequest,
    response: KaraokeResponse,
) -> UUID:
    """Persist a generation and return its id. Raises PersistenceError."""
    generation = Generation(
        user_id=user_id,
        prompt_data=request.model_dump(),
        result_text=format_result_text(response),
        friendship_score=response.friendship.score,
    )
    try:
        db.add(generation)
        await db.commit()
        await db.refresh(generation)
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError("Could not save generation", operation="save_generation") from e

    logger.info(
        "generation_saved",
        generation_id=str(generation.id),
        user_id=str(user_id),
        friendship_score=generation.friendship_score,
    )
    return generation.id


def _apply_filters(query, filters: GenerationFilters):
    query = query.where(Generation.user_id == filters.user_id)
    if filters.era:
        query = query.where(Generation.prompt_data["era"].as_string() == filters.era)
    if filters.genre:
        query = query.where(Generation.prompt_data["genre"].as_string() == filters.genre)
    if filters.min_score is not None:
        query = query.where(Generation.friendship_score >= filters.min_score)
    if filters.max_score is not None:
        query = query.where(Generation.friendship_score <= filters.max_score)
    if filters.start_date is not None:
        query = query.where(Generation.created_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.where(Generation.created_at <= filters.end_date)
    return query


async def get_user_generations(
    db: AsyncSession,
    filters: GenerationFilters,
    sort: GenerationSort | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Generation], int]:
    """
    One page of a user's generations and the filtered total.

    ``page`` and ``limit`` must already be resolved
    (see ``pagination.resolve_page_params``).
    """
    sort = sort or GenerationSort()
    column = SORT_FIELDS.get(sort.field, Generation.created_at)
    if sort.order == "asc":
        ordering = (column.asc(), Generation.id.asc())
    else:
        ordering = (column.desc(), Generation.id.desc())

    count_query = _apply_filters(select(func.count()).select_from(Generation), filters)
    query = (
        _apply_filters(select(Generation), filters)
        .order_by(*ordering)
        .offset((page - 1) * limit)
        .limit(limit)
    )

    try:
        total = (await db.execute(count_query)).scalar_one()
        rows = list((await db.execute(query)).scalars().all())
    except SQLAlchemyError as e:
        logger.error("generation_list_failed", user_id=str(filters.user_id), error=str(e))
        raise PersistenceError("Could not load generations", operation="list_generations") from e

    return rows, total


async def get_generation_by_id(
    db: AsyncSession, generation_id: UUID, user_id: UUID
) -> Generation:
    """Fetch one generation owned by ``user_id``.

    Raises:
        NotFoundError: missing, or owned by someone else.
        PersistenceError: the store failed.
    """
    try:
        result = await db.execute(
            select(Generation).where(
                Generation.id == generation_id,
                Generation.user_id == user_id,
            )
        )
        generation = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(
            "generation_get_failed", generation_id=str(generation_id), error=str(e)
        )
        raise PersistenceError("Could not load generation", operation="get_generation") from e

    if generation is None:
        raise NotFoundError("Generation", str(generation_id))
    return generation


async def get_recent_generations(
    db: AsyncSession, user_id: UUID, limit: int = 10
) -> list[Generation]:
    try:
        result = await db.execute(
            select(Generation)
            .where(Generation.user_id == user_id)
            .order_by(Generation.created_at.desc(), Generation.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error("generation_recent_failed", user_id=str(user_id), error=str(e))
        raise PersistenceError("Could not load generations", operation="recent_generations") from e


async def get_user_generation_stats(db: AsyncSession, user_id: UUID) -> GenerationStatsResponse:
    try:
        result = await db.execute(
            select(
                func.count(Generation.id),
                func.avg(Generation.friendship_score),
                func.max(Generation.friendship_score),
                func.min(Generation.friendship_score),
            ).where(Generation.user_id == user_id)
        )
        total, average, best, worst = result.one()
    except SQLAlchemyError as e:
        logger.error("generation_stats_failed", user_id=str(user_id), error=str(e))
        raise PersistenceError("Could not load generation stats", operation="generation_stats") from e

    if not total:
        return GenerationStatsResponse()
    return GenerationStatsResponse(
        total=total,
        average_score=round(float(average), 2),
        max_score=best,
        min_score=worst,
    )
