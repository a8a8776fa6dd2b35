"""Score ledger writes.

A score event is keyed on its generation: scoring the same generation again
updates the existing row instead of adding another one.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.exceptions import PersistenceError
from karaoke.logging_config import get_logger
from karaoke.models import ScoreEvent, utcnow

logger = get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class ScoreRecordOutcome:
    """Result of a best-effort score write."""

    event_id: UUID | None = None
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _dialect_name(db: AsyncSession) -> str:
    bind = db.bind
    return bind.dialect.name if bind is not None else ""


async def _upsert_native(
    db: AsyncSession,
    insert,
    user_id: UUID,
    generation_id: UUID,
    score: int,
) -> UUID:
    stmt = insert(ScoreEvent).values(
        user_id=user_id,
        generation_id=generation_id,
        score=score,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ScoreEvent.generation_id],
        set_={"score": stmt.excluded.score, "updated_at": utcnow()},
    ).returning(ScoreEvent.id)
    result = await db.execute(stmt)
    return result.scalar_one()


async def _upsert_fallback(
    db: AsyncSession,
    user_id: UUID,
    generation_id: UUID,
    score: int,
) -> UUID:
    """Select-then-write for dialects without ON CONFLICT support."""
    result = await db.execute(
        select(ScoreEvent).where(ScoreEvent.generation_id == generation_id)
    )
    existing = result.scalar_one_or_none()
    if existing is not None:
        existing.score = score
        await db.flush()
        return existing.id

    event = ScoreEvent(user_id=user_id, generation_id=generation_id, score=score)
    db.add(event)
    await db.flush()
    return event.id


async def record_score(
    db: AsyncSession,
    user_id: UUID,
    generation_id: UUID,
    score: int,
) -> UUID:
    """
    Record the friendship score for a generation and return the event id.

    Idempotent per generation: an existing event gets its score replaced and
    keeps its id. Commits the write.

    Raises:
        PersistenceError: the store is unreachable or rejected the write
            (e.g. the user or generation does not exist).
    """
    insert = _UPSERT_INSERTS.get(_dialect_name(db))
    try:
        if insert is not None:
            event_id = await _upsert_native(db, insert, user_id, generation_id, score)
        else:
            event_id = await _upsert_fallback(db, user_id, generation_id, score)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError(
            f"Could not record score for generation {generation_id}",
            operation="record_score",
        ) from e

    logger.info(
        "score_recorded",
        event_id=str(event_id),
        user_id=str(user_id),
        generation_id=str(generation_id),
        score=score,
    )
    return event_id


async def record_score_best_effort(
    db: AsyncSession,
    user_id: UUID,
    generation_id: UUID,
    score: int,
) -> ScoreRecordOutcome:
    """Record a score without ever raising on store failures.

    The leaderboard is a side channel of song generation, so a failed write
    is logged and reported in the outcome instead of failing the caller.
    """
    try:
        event_id = await record_score(db, user_id, generation_id, score)
    except PersistenceError as e:
        logger.warning(
            "score_record_failed",
            user_id=str(user_id),
            generation_id=str(generation_id),
            error=str(e.__cause__ or e),
        )
        return ScoreRecordOutcome(error=e)
    return ScoreRecordOutcome(event_id=event_id)
