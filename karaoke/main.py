"""Cat & Parrot Ancient Karaoke FastAPI application."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from karaoke import __version__
from karaoke.config import get_settings
from karaoke.database import close_db, init_db
from karaoke.exceptions import ConfigurationError
from karaoke.logging_config import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from karaoke.middleware.rate_limit import RateLimitMiddleware
from karaoke.redis import close_redis, get_redis, init_redis
from karaoke.routes.auth import router as auth_router
from karaoke.routes.generations import router as generations_router
from karaoke.routes.karaoke import router as karaoke_router
from karaoke.routes.leaderboard import router as leaderboard_router

logger = get_logger(__name__)

GENERATE_PATH = "/api/generate"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB + Redis on startup, cleanup on shutdown."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")

    if not settings.jwt_secret_key:
        raise ConfigurationError("JWT_SECRET_KEY environment variable is required")
    if not settings.openai_api_key:
        logger.warning("llm_api_key_missing", detail="song generation will return 500")

    logger.info("starting_database_init")
    await init_db()

    await init_redis(settings.redis_url)
    logger.info("redis_connected")

    logger.info("application_started", version=__version__)
    yield

    logger.info("shutting_down")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Cat & Parrot Ancient Karaoke",
        description="Comedic historical duets and a friendship-score leaderboard",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        RateLimitMiddleware,
        redis_getter=get_redis,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window_seconds,
        path_limits={GENERATE_PATH: settings.rate_limit_generate_requests},
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        bind_request_context(request_id, method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context("request_id", "method", "path")
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(auth_router)
    app.include_router(karaoke_router)
    app.include_router(generations_router)
    app.include_router(leaderboard_router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "karaoke"}

    return app


app = create_app()
