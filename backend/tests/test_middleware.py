"""
Sanctuary Backend — Middleware and Health Tests
=================================================

What we test:
    ✅ Credential endpoint limiter: allows up to the limit, then 429 + Retry-After
    ✅ Window slides: old requests stop counting
    ✅ Request ID echoed or generated
    ✅ /health probes the database
"""

import pytest
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from httpx import ASGITransport, AsyncClient

from sanctuary.config import Settings
from sanctuary.exceptions import RateLimitExceededError
from sanctuary.middleware.logging import level_for_status
from sanctuary.middleware.rate_limit import RateLimitMiddleware
from sanctuary.middleware.request_id import resolve_request_id


def _limiter(requests=3, window=60):
    return RateLimitMiddleware(app=None, config=Settings(rate_limit_requests=requests, rate_limit_window=window))


class TestRateLimitWindow:

    def test_allows_up_to_limit(self):
        limiter = _limiter()
        for second in range(3):
            limiter.check("10.0.0.1", 1000.0 + second)

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.check("10.0.0.1", 1003.0)
        assert exc_info.value.retry_after == 58

    def test_clients_are_independent(self):
        limiter = _limiter(requests=1)
        limiter.check("10.0.0.1", 1000.0)
        limiter.check("10.0.0.2", 1000.0)

    def test_window_slides(self):
        limiter = _limiter(requests=2, window=60)
        limiter.check("10.0.0.1", 1000.0)
        limiter.check("10.0.0.1", 1030.0)

        limiter.check("10.0.0.1", 1061.0)


async def _login_ok(request):
    return PlainTextResponse("ok")


class TestRateLimitMiddleware:

    @pytest.mark.asyncio
    async def test_only_credential_paths_limited(self):
        app = Starlette(routes=[
            Route("/api/users/login", _login_ok, methods=["POST"]),
            Route("/api/events", _login_ok, methods=["GET", "POST"]),
        ])
        app.add_middleware(RateLimitMiddleware, config=Settings(rate_limit_requests=2, rate_limit_window=900))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.post("/api/users/login")).status_code == 200
            assert (await client.post("/api/users/login")).status_code == 200
            limited = await client.post("/api/users/login")
            for _ in range(5):
                assert (await client.post("/api/events")).status_code == 200

        assert limited.status_code == 429
        assert int(limited.headers["Retry-After"]) > 0
        assert limited.json()["error"] == "rate_limit_exceeded"


class TestAccessLogLevels:

    @pytest.mark.parametrize("status, level", [(200, 20), (201, 20), (302, 20), (404, 30), (401, 30), (500, 40)])
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated(self, test_client):
        response = await test_client.get("/api/events")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_echoed_and_in_error_body(self, test_client):
        response = await test_client.get(
            "/api/events/7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e",
            headers={"X-Request-ID": "trace-42"},
        )
        assert response.headers["X-Request-ID"] == "trace-42"
        assert response.json()["request_id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_unsafe_client_id_replaced(self, test_client):
        response = await test_client.get("/api/events", headers={"X-Request-ID": "abc def\tforged"})

        rid = response.headers["X-Request-ID"]
        assert rid != "abc def\tforged"
        assert len(rid) == 8

    @pytest.mark.parametrize(
        "client_value, reused",
        [("trace-42", True), ("a.b_c-1", True), ("x" * 64, True), ("x" * 65, False), ("", False), (None, False), ("a/b", False)],
    )
    def test_resolve_request_id(self, client_value, reused):
        assert (resolve_request_id(client_value) == client_value) is reused


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"


class TestMediaRoute:

    @pytest.mark.asyncio
    async def test_unknown_file(self, test_client):
        assert (await test_client.get("/mp3/nothing-here.mp3")).status_code == 404

    @pytest.mark.asyncio
    async def test_hidden_file_not_served(self, test_client):
        assert (await test_client.get("/mp3/.staging-abc.mp3")).status_code == 404
