"""Song generation workflow: LLM call, persistence, score recording."""

from dataclasses import dataclass
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.exceptions import GenerationError, PersistenceError
from karaoke.llm_client import ChatCompletionClient
from karaoke.logging_config import get_logger
from karaoke.schemas import GenerateKaraokeResponse, KaraokeRequest, KaraokeResponse
from karaoke.services.generation_service import save_generation
from karaoke.services.prompts import build_karaoke_prompt
from karaoke.services.score_service import record_score_best_effort

logger = get_logger(__name__)


@dataclass
class KaraokeResult:
    karaoke: KaraokeResponse
    generation_id: UUID | None = None
    score_recorded: bool = False

    def to_response(self) -> GenerateKaraokeResponse:
        return GenerateKaraokeResponse(
            **self.karaoke.model_dump(),
            generation_id=self.generation_id,
            score_recorded=self.score_recorded,
        )


async def generate_karaoke(
    db: AsyncSession,
    client: ChatCompletionClient,
    user_id: UUID,
    request: KaraokeRequest,
) -> KaraokeResult:
    """
    Generate a song for ``request`` and store it for ``user_id``.

    The song is returned even when storing it or scoring it fails; the
    result's ``generation_id`` and ``score_recorded`` show what was persisted.

    Raises:
        GenerationError: the LLM call failed or its answer has the wrong shape.
    """
    prompt = build_karaoke_prompt(
        request.cat_name, request.parrot_name, request.era, request.genre
    )
    data = await client.complete_json(prompt)

    try:
        karaoke = KaraokeResponse.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("llm_response_invalid", errors=e.error_count())
        raise GenerationError("LLM response does not match the expected format") from e

    result = KaraokeResult(karaoke=karaoke)

    try:
        result.generation_id = await save_generation(db, user_id, request, karaoke)
    except PersistenceError as e:
        logger.error(
            "generation_save_failed",
            user_id=str(user_id),
            error=str(e.__cause__ or e),
        )
        return result

    outcome = await record_score_best_effort(
        db, user_id, result.generation_id, karaoke.friendship.score
    )
    result.score_recorded = outcome.ok

    logger.info(
        "karaoke_generated",
        user_id=str(user_id),
        generation_id=str(result.generation_id),
        era=request.era,
        genre=request.genre,
        friendship_score=karaoke.friendship.score,
        score_recorded=result.score_recorded,
    )
    return result
