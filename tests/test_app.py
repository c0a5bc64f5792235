"""
Application-level behaviour: error envelope, health checks and rate limiting
"""

import pytest

from app.services.search_service import SearchService


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "The requested resource was not found", "details": {}},
        }

    @pytest.mark.asyncio
    async def test_validation_error_lists_fields(self, client):
        response = await client.get("/api/v1/venues", params={"page": 0})
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"][0]["field"] == "query.page"

    @pytest.mark.asyncio
    async def test_unhandled_error(self, client, monkeypatch):
        async def explode(self, *args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(SearchService, "search", explode)

        response = await client.get("/api/v1/search", params={"q": "pizza"})

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "INTERNAL_ERROR"
        assert data["error_id"]
        assert data["error"]["details"]["exception"] == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client):
        response = await client.get("/health/live")
        assert response.headers["X-Request-ID"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_readiness(self, client):
        response = await client.get("/api/v1/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True, "cache": True, "google_places": True}

    @pytest.mark.asyncio
    async def test_readiness_with_broken_cache(self, client, context, monkeypatch):
        async def ping():
            raise ConnectionError("redis down")

        monkeypatch.setattr(context.cache.backend, "ping", ping)

        response = await client.get("/api/v1/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not ready"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_not_applied_outside_production(self, client, context):
        context.settings.RATE_LIMIT_MAX_REQUESTS = 1

        for _ in range(3):
            response = await client.get("/api/v1/venues")
            assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_limit_in_production(self, client, context):
        context.settings.APP_ENV = "production"
        context.settings.RATE_LIMIT_MAX_REQUESTS = 2

        first = await client.get("/api/v1/venues")
        second = await client.get("/api/v1/venues")
        third = await client.get("/api/v1/venues")

        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert third.headers["X-RateLimit-Limit"] == "2"

    @pytest.mark.asyncio
    async def test_paths_outside_api_not_limited(self, client, context):
        context.settings.APP_ENV = "production"
        context.settings.RATE_LIMIT_MAX_REQUESTS = 1

        for _ in range(3):
            response = await client.get("/health/live")
            assert response.status_code == 200
