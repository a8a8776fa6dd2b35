"""Pydantic v2 request/response schemas for all endpoints."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Karaoke generation
# ---------------------------------------------------------------------------


class KaraokeRequest(BaseModel):
    """Generation input. Era and genre are free text so API clients are not
    tied to the option lists shown in the UI."""

    model_config = ConfigDict(str_strip_whitespace=True)

    cat_name: str = Field(..., min_length=1, max_length=100)
    parrot_name: str = Field(..., min_length=1, max_length=100)
    era: str = Field(..., min_length=1, max_length=100)
    genre: str = Field(..., min_length=1, max_length=100)


class SongSchema(BaseModel):
    verse: str
    chorus: str


class FriendshipSchema(BaseModel):
    score: int
    reason: str


class KaraokeResponse(BaseModel):
    """The JSON document the LLM must return."""

    song: SongSchema
    vocal_style: str
    lore: str
    friendship: FriendshipSchema


class GenerateKaraokeResponse(KaraokeResponse):
    generation_id: UUID | None = None
    score_recorded: bool = False


class KaraokeOptionsResponse(BaseModel):
    eras: list[str]
    genres: list[str]


# ---------------------------------------------------------------------------
# Generation history
# ---------------------------------------------------------------------------


class GenerationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    prompt_data: dict
    result_text: str
    friendship_score: int
    created_at: datetime


class PagePagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class GenerationListResponse(BaseModel):
    data: list[GenerationResponse] = Field(default_factory=list)
    pagination: PagePagination


class GenerationStatsResponse(BaseModel):
    total: int = 0
    average_score: float = 0.0
    max_score: int = 0
    min_score: int = 0


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


class GenerationSnapshot(BaseModel):
    id: UUID
    prompt_data: dict
    result_text: str
    friendship_score: int


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: UUID
    email: str | None
    total_score: int
    best_score: int
    best_generation: GenerationSnapshot | None = None


class LeaderboardPagination(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse] = Field(default_factory=list)
    pagination: LeaderboardPagination


class UserStandingResponse(BaseModel):
    ranked: bool
    rank: int | None = None
    total_score: int | None = None
    ranked_users: int = 0


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class UserRegisterRequest(BaseModel):
    email: str = Field(..., min_length=5, max_length=200)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Enter a valid email address")
        return v


class UserLoginRequest(BaseModel):
    email: str = Field(..., max_length=200)
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    status: str
    created_at: datetime


class UserLoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"
    user: UserResponse


class TokenRefreshRequest(BaseModel):
    refresh_token: str


class MessageResponse(BaseModel):
    message: str
