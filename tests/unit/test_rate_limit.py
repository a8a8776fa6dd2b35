"""Tests for the Redis sliding-window rate limiter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from karaoke.middleware.rate_limit import RateLimitMiddleware, caller_identifier


def _app(redis_getter, limit=2, path_limits=None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        redis_getter=redis_getter,
        limit=limit,
        window=60,
        path_limits=path_limits,
    )

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.post("/api/generate")
    async def generate():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def _redis_with_count(count: int) -> MagicMock:
    redis = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[0, 1, count, True])
    redis.pipeline.return_value = pipe
    return redis


async def _request(app, method, path, headers=None):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.request(method, path, headers=headers)


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_under_limit_passes_with_headers(self):
        response = await _request(_app(lambda: _redis_with_count(1)), "GET", "/ping")

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "1"

    @pytest.mark.asyncio
    async def test_over_limit_returns_429(self):
        response = await _request(_app(lambda: _redis_with_count(3)), "GET", "/ping")

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limit_exceeded"
        assert response.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_path_specific_limit(self):
        app = _app(lambda: _redis_with_count(3), limit=60, path_limits={"/api/generate": 2})

        assert (await _request(app, "POST", "/api/generate")).status_code == 429
        assert (await _request(app, "GET", "/ping")).status_code == 200

    @pytest.mark.asyncio
    async def test_skip_paths_bypass_redis(self):
        getter = MagicMock()

        response = await _request(_app(getter), "GET", "/health")

        assert response.status_code == 200
        getter.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_unavailable_passes_through(self):
        def getter():
            raise RuntimeError("Redis not initialized")

        response = await _request(_app(getter), "GET", "/ping")

        assert response.status_code == 200


class TestCallerIdentifier:
    def test_tokens_with_shared_prefix_differ(self):
        def request(token):
            req = MagicMock()
            req.headers = {"Authorization": f"Bearer eyJhbGciOiJIUzI1NiJ9.{token}"}
            return req

        assert caller_identifier(request("aaa")) != caller_identifier(request("bbb"))

    def test_falls_back_to_client_host(self):
        req = MagicMock()
        req.headers = {}
        req.client.host = "10.0.0.7"

        assert caller_identifier(req) == "10.0.0.7"
