"""Redis-based sliding window rate limiting middleware."""

import hashlib
import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from karaoke.logging_config import get_logger

logger = get_logger(__name__)

SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

DEFAULT_LIMIT = 60
DEFAULT_WINDOW = 60  # seconds
KEY_PREFIX = "karaoke:ratelimit"


def caller_identifier(request: Request) -> str:
    """A stable per-caller key: a digest of the bearer token, else the client address."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer ") and len(auth_header) > 7:
        # JWTs share a common header prefix, so hash the whole token
        return hashlib.sha256(auth_header[7:].encode()).hexdigest()[:16]
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis sliding window rate limiter (ZADD + ZREMRANGEBYSCORE).

    ``path_limits`` overrides the request limit for individual paths, e.g.
    the LLM-backed generation endpoint.
    """

    def __init__(
        self,
        app,
        redis_getter,
        limit: int = DEFAULT_LIMIT,
        window: int = DEFAULT_WINDOW,
        path_limits: dict[str, int] | None = None,
    ):
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limit = limit
        self._window = window
        self._path_limits = path_limits or {}

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in SKIP_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        limit = self._path_limits.get(path, self._limit)
        identifier = caller_identifier(request)
        key = f"{KEY_PREFIX}:{identifier}:{path}"

        try:
            redis = self._redis_getter()
            now = time.time()

            pipe = redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - self._window)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self._window + 1)
            results = await pipe.execute()
        except Exception as e:
            # Redis unavailable or not initialised: let the request through
            logger.warning("rate_limit_redis_error", path=path, error=str(e))
            return await call_next(request)

        request_count = results[2]
        if request_count > limit:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=path,
                count=request_count,
                limit=limit,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "detail": f"Rate limit exceeded: {limit} requests per {self._window}s",
                    "retry_after": self._window,
                },
                headers={"Retry-After": str(self._window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - request_count))
        return response
