"""Karaoke endpoints: option lists and song generation."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from karaoke.auth import get_current_user
from karaoke.config import get_settings
from karaoke.database import get_db
from karaoke.exceptions import ConfigurationError, GenerationError
from karaoke.llm_client import build_chat_client
from karaoke.logging_config import get_logger
from karaoke.models import User
from karaoke.schemas import (
    GenerateKaraokeResponse,
    KaraokeOptionsResponse,
    KaraokeRequest,
)
from karaoke.services.karaoke_service import generate_karaoke
from karaoke.services.prompts import ERAS, GENRES

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["karaoke"])


@router.get("/karaoke/options", response_model=KaraokeOptionsResponse)
async def karaoke_options():
    return KaraokeOptionsResponse(eras=ERAS, genres=GENRES)


@router.post("/generate", response_model=GenerateKaraokeResponse)
async def generate(
    body: KaraokeRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Generate a duet for the signed-in user and record its friendship score."""
    try:
        client = build_chat_client(get_settings())
    except ConfigurationError as e:
        logger.error("llm_not_configured", error=e.message)
        raise HTTPException(
            status_code=500,
            detail={"error": e.error_type, "message": "Song generation is not configured"},
        )

    try:
        async with client:
            result = await generate_karaoke(db, client, user.id, body)
    except GenerationError as e:
        logger.warning("karaoke_generation_failed", user_id=str(user.id), error=e.message)
        raise HTTPException(status_code=502, detail="Song generation failed, please try again")

    return result.to_response()
