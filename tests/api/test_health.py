"""Tests for health, debug and app-level behaviour."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.app.core.config import get_settings

if TYPE_CHECKING:
    from httpx import AsyncClient


async def test_health_reports_unconfigured_identity_provider(client: AsyncClient, settings):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["identity_provider"]["status"] == "degraded"
    assert body["status"] == "degraded"
    assert body["environment"] == settings.APP_ENV


async def test_probes(client: AsyncClient):
    ready = await client.get("/api/v1/health/ready")
    live = await client.get("/api/v1/health/live")

    assert ready.json() == {"status": "ready"}
    assert live.json() == {"status": "alive"}


async def test_debug_config_never_returns_values(client: AsyncClient, settings):
    response = await client.get("/api/v1/debug/config")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["has_database_url"] is True
    assert data["has_cognito_user_pool"] is False
    assert settings.DATABASE_URL not in response.text


async def test_debug_status_counts(client: AsyncClient, make_doctor):
    await make_doctor()

    response = await client.get("/api/v1/debug/doctors")

    data = response.json()["data"]
    assert data["counts"]["pending"] == 1
    assert data["total"] == 1


async def test_debug_hidden_in_production(client: AsyncClient, app, settings):
    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"APP_ENV": "production"})

    response = await client.get("/api/v1/debug/config")

    assert response.status_code == 404


async def test_security_headers_and_request_id(client: AsyncClient):
    response = await client.get("/api/v1/health/live", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


async def test_request_id_generated(client: AsyncClient):
    response = await client.get("/api/v1/health/live")

    assert len(response.headers["X-Request-ID"]) == 36


async def test_root(client: AsyncClient, settings):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["service"] == settings.APP_NAME
    assert response.json()["docs"] == "/docs"
