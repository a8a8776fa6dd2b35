"""Per-user ranking over the score ledger.

Every read recomputes the ranking from ``leaderboard_entries``:

* users are grouped and their scores summed,
* each user's best event is picked (highest score, then most recent),
* users are ordered by total score descending, then user id ascending,
  so no two users ever share a position.

The page and the ranked-user count come from a single statement, so they
always describe the same snapshot of the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import func, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.exceptions import PersistenceError
from karaoke.logging_config import get_logger
from karaoke.models import Generation, ScoreEvent, User
from karaoke.schemas import GenerationSnapshot, LeaderboardEntryResponse

logger = get_logger(__name__)


@dataclass
class LeaderboardPage:
    entries: list[LeaderboardEntryResponse] = field(default_factory=list)
    total: int = 0


@dataclass(frozen=True)
class UserStanding:
    rank: int
    total_score: int
    ranked_users: int


def _standings_cte():
    """One row per user: total score plus the user's best event."""
    ranked = select(
        ScoreEvent.user_id,
        ScoreEvent.generation_id,
        ScoreEvent.score.label("best_score"),
        func.sum(ScoreEvent.score)
        .over(partition_by=ScoreEvent.user_id)
        .label("total_score"),
        func.row_number()
        .over(
            partition_by=ScoreEvent.user_id,
            order_by=(
                ScoreEvent.score.desc(),
                ScoreEvent.created_at.desc(),
                ScoreEvent.id.desc(),
            ),
        )
        .label("pick"),
    ).cte("ranked")

    return (
        select(
            ranked.c.user_id,
            ranked.c.generation_id,
            ranked.c.best_score,
            ranked.c.total_score,
        )
        .where(ranked.c.pick == 1)
        .cte("standings")
    )


class LeaderboardService:
    """Read-only ranking queries over the score ledger."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_leaderboard_page(self, limit: int, offset: int) -> LeaderboardPage:
        """
        Return ranked users ``[offset, offset + limit)`` and the number of
        ranked users.

        ``limit`` and ``offset`` must already be resolved (see
        ``pagination.resolve_leaderboard_params``).

        Raises:
            PersistenceError: the aggregate query failed; nothing partial is returned.
        """
        standings = _standings_cte()

        totals = select(func.count().label("total")).select_from(standings).subquery("totals")
        page = (
            select(standings)
            .order_by(standings.c.total_score.desc(), standings.c.user_id.asc())
            .limit(limit)
            .offset(offset)
            .subquery("page")
        )

        # totals LEFT JOIN page: an out-of-range page still yields one row
        # carrying the count, with NULL page columns.
        stmt = (
            select(
                totals.c.total,
                page.c.user_id,
                page.c.total_score,
                page.c.best_score,
                User.email,
                Generation.id.label("generation_id"),
                Generation.prompt_data,
                Generation.result_text,
                Generation.friendship_score,
            )
            .select_from(
                totals.outerjoin(page, true())
                .outerjoin(User, User.id == page.c.user_id)
                .outerjoin(Generation, Generation.id == page.c.generation_id)
            )
            .order_by(page.c.total_score.desc(), page.c.user_id.asc())
        )

        try:
            rows = (await self.session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error("leaderboard_read_failed", limit=limit, offset=offset, error=str(e))
            raise PersistenceError("Could not load leaderboard", operation="leaderboard") from e

        total = int(rows[0].total) if rows else 0
        entries = []
        for position, row in enumerate((r for r in rows if r.user_id is not None), start=1):
            snapshot = None
            if row.generation_id is not None:
                snapshot = GenerationSnapshot(
                    id=row.generation_id,
                    prompt_data=row.prompt_data or {},
                    result_text=row.result_text,
                    friendship_score=row.friendship_score,
                )
            entries.append(
                LeaderboardEntryResponse(
                    rank=offset + position,
                    user_id=row.user_id,
                    email=row.email,
                    total_score=int(row.total_score),
                    best_score=int(row.best_score),
                    best_generation=snapshot,
                )
            )

        return LeaderboardPage(entries=entries, total=total)

    async def get_user_standing(self, user_id: UUID) -> UserStanding | None:
        """Rank of one user on the leaderboard, or None if the user is unranked."""
        totals = (
            select(
                ScoreEvent.user_id,
                func.sum(ScoreEvent.score).label("total_score"),
            )
            .group_by(ScoreEvent.user_id)
            .subquery("user_totals")
        )
        ordered = select(
            totals.c.user_id,
            totals.c.total_score,
            func.row_number()
            .over(order_by=(totals.c.total_score.desc(), totals.c.user_id.asc()))
            .label("rank"),
            func.count().over().label("ranked_users"),
        ).subquery("ordered")

        try:
            row = (
                await self.session.execute(select(ordered).where(ordered.c.user_id == user_id))
            ).one_or_none()
        except SQLAlchemyError as e:
            logger.error("leaderboard_standing_failed", user_id=str(user_id), error=str(e))
            raise PersistenceError("Could not load leaderboard", operation="standing") from e

        if row is None:
            return None
        return UserStanding(
            rank=int(row.rank),
            total_score=int(row.total_score),
            ranked_users=int(row.ranked_users),
        )


__all__ = ["LeaderboardPage", "LeaderboardService", "UserStanding"]
