"""Pagination parameter resolution and metadata assembly.

Malformed paging parameters never fail a request: they are resolved to
defaults here before any query runs.
"""

import math

from karaoke.exceptions import ValidationError
from karaoke.logging_config import get_logger
from karaoke.schemas import LeaderboardPagination, PagePagination

logger = get_logger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 50
MAX_LEADERBOARD_LIMIT = 100

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def parse_int_param(name: str, raw: str | int | None) -> int | None:
    """Parse an optional integer query parameter. Raises ValidationError."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(raw.strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def _parse_or_default(name: str, raw: str | int | None, default: int) -> int:
    try:
        value = parse_int_param(name, raw)
    except ValidationError as e:
        logger.debug("pagination_param_defaulted", field=e.field, raw=raw)
        return default
    return default if value is None else value


def resolve_leaderboard_params(
    limit: str | int | None,
    offset: str | int | None,
) -> tuple[int, int]:
    """Resolve raw leaderboard ``limit``/``offset`` to safe values.

    A limit above the maximum is clamped to the maximum; a non-positive or
    unparseable limit falls back to the default. A negative or unparseable
    offset becomes 0.
    """
    resolved_limit = min(
        _parse_or_default("limit", limit, DEFAULT_LEADERBOARD_LIMIT),
        MAX_LEADERBOARD_LIMIT,
    )
    if resolved_limit <= 0:
        resolved_limit = DEFAULT_LEADERBOARD_LIMIT

    resolved_offset = _parse_or_default("offset", offset, 0)
    if resolved_offset < 0:
        resolved_offset = 0

    return resolved_limit, resolved_offset


def resolve_page_params(
    page: str | int | None,
    limit: str | int | None,
) -> tuple[int, int]:
    """Resolve raw ``page``/``limit`` for page-numbered listings."""
    resolved_page = _parse_or_default("page", page, 1)
    if resolved_page < 1:
        resolved_page = 1

    resolved_limit = _parse_or_default("limit", limit, DEFAULT_PAGE_LIMIT)
    if not 0 < resolved_limit <= MAX_PAGE_LIMIT:
        resolved_limit = DEFAULT_PAGE_LIMIT

    return resolved_page, resolved_limit


def build_leaderboard_pagination(limit: int, offset: int, total: int) -> LeaderboardPagination:
    """Assemble offset-based pagination metadata."""
    if limit < 0 or offset < 0 or total < 0:
        raise ValidationError("limit, offset and total must be non-negative")
    return LeaderboardPagination(
        limit=limit,
        offset=offset,
        total=total,
        has_more=offset + limit < total,
    )


def build_page_pagination(page: int, limit: int, total: int) -> PagePagination:
    """Assemble page-number pagination metadata."""
    if page < 1 or limit < 1 or total < 0:
        raise ValidationError("page and limit must be positive, total non-negative")
    total_pages = math.ceil(total / limit)
    return PagePagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
