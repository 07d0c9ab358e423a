from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from irguard.apps.api.deps import current_organization_id, get_session_factory
from irguard.apps.api.main import create_app
from irguard.core.config import get_settings
from irguard.services.quota.enforcement import enforce_quota
from irguard.services.quota.limits import ensure_limits, update_limits
from irguard.services.quota.rate_limiter import reset_rate_limiter
from irguard.tests.utils.seed import (
    add_incidents,
    create_organization,
    load_limits,
    seed_counters,
)


def _apply_env(monkeypatch, **overrides: str) -> None:
    # Keep test configuration deterministic.
    for key, value in overrides.items():
        monkeypatch.setenv(key, str(value))
    get_settings.cache_clear()
    reset_rate_limiter()


def _client(session_factory, *, raise_app_exceptions: bool = True) -> AsyncClient:
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    # Mutating route used to exercise the quota denial envelope end to end.
    @app.post("/v1/incidents")
    async def create_incident(
        organization_id: int = Depends(current_organization_id),
        factory=Depends(get_session_factory),
    ) -> dict:
        await enforce_quota(factory, organization_id, "incidents")
        return {"ok": True}

    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    return AsyncClient(transport=transport, base_url="http://test")


def _headers(organization_id: int) -> dict[str, str]:
    return {"X-Organization-Id": str(organization_id), "X-Request-Id": "req-test"}


@pytest.mark.asyncio
async def test_limits_endpoint_returns_tier_defaults(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory, license_type="professional")

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/limits", headers=_headers(org_id))

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["request_id"] == "req-test"
    assert body["meta"]["api_version"] == "v1"
    data = body["data"]
    assert data["organization_id"] == org_id
    assert data["license_type"] == "professional"
    assert data["limits"]["max_users"] == 25
    assert data["limits"]["max_incidents"] == 1000
    assert data["features"]["sso"] is True
    assert data["features"]["whitelabeling"] is False


@pytest.mark.asyncio
async def test_limits_endpoint_reports_unlimited_as_null(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory, license_type="enterprise")

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/limits", headers=_headers(org_id))

    limits = response.json()["data"]["limits"]
    assert limits["max_incidents"] is None
    assert limits["max_assets"] is None
    assert limits["max_users"] == 100


@pytest.mark.asyncio
async def test_usage_endpoint_reports_summary(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await add_incidents(session_factory, org_id, 90)

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/usage", headers=_headers(org_id))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["usage"]["incidents"] == 90
    assert data["percentages"]["incidents"] == 90
    assert data["warnings"] == [
        {"resource": "incidents", "percentage": 90, "message": "incidents usage is at 90%"}
    ]


@pytest.mark.asyncio
async def test_quota_endpoint_is_a_dry_run(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await add_incidents(session_factory, org_id, 100)

    async with _client(session_factory) as client:
        response = await client.get(
            "/v1/organization/quota/incidents", headers=_headers(org_id)
        )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["resource_type"] == "incidents"
    assert data["allowed"] is False
    assert data["current"] == 100
    assert data["limit"] == 100
    assert data["remaining"] == 0
    assert data["error"]["code"] == "QUOTA_EXCEEDED"
    assert data["error"]["upgrade_url"] == "/pricing?upgrade=incidents"


@pytest.mark.asyncio
async def test_quota_denial_returns_402_envelope(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await add_incidents(session_factory, org_id, 100)

    async with _client(session_factory) as client:
        response = await client.post("/v1/incidents", headers=_headers(org_id))

    assert response.status_code == 402
    error = response.json()["error"]
    assert error["code"] == "QUOTA_EXCEEDED"
    assert error["message"] == "Quota exceeded for incidents: 100/100"
    assert error["details"]["current"] == 100
    assert error["details"]["limit"] == 100
    assert error["details"]["resource_type"] == "incidents"
    assert error["details"]["upgrade_url"] == "/pricing?upgrade=incidents"


@pytest.mark.asyncio
async def test_exhausted_api_window_returns_429(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await ensure_limits(session_factory, org_id)
    reset_at = datetime.now(timezone.utc) + timedelta(minutes=30)
    await seed_counters(session_factory, org_id, api_calls_this_hour=1000, api_reset_at=reset_at)

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/limits", headers=_headers(org_id))

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "RATE_LIMITED"
    assert error["details"]["current"] == 1000
    assert error["details"]["limit"] == 1000
    assert error["details"]["reset_at"].startswith(reset_at.strftime("%Y-%m-%dT%H:%M"))
    assert 0 < int(response.headers["Retry-After"]) <= 1800
    assert response.headers["X-RateLimit-Limit"] == "1000"
    assert response.headers["X-RateLimit-Remaining"] == "0"


@pytest.mark.asyncio
async def test_each_request_consumes_one_api_call(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)

    async with _client(session_factory) as client:
        for _ in range(3):
            response = await client.get("/v1/organization/limits", headers=_headers(org_id))
            assert response.status_code == 200

    assert (await load_limits(session_factory, org_id)).api_calls_this_hour == 3


@pytest.mark.asyncio
async def test_rate_limiting_can_be_disabled(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch, RATE_LIMIT_ENABLED="false")
    org_id = await create_organization(session_factory)

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/usage", headers=_headers(org_id))

    assert response.status_code == 200
    assert (await load_limits(session_factory, org_id)).api_calls_this_hour == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path",
    [
        "/v1/organization/quota/incidents?increment_by=0",
        "/v1/organization/quota/incidents?increment_by=-2",
        "/v1/organization/quota/widgets",
    ],
)
async def test_invalid_quota_requests_return_422(monkeypatch, session_factory, path) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)

    async with _client(session_factory) as client:
        response = await client.get(path, headers=_headers(org_id))

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_missing_organization_context_returns_401(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/limits")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_storage_limit_override_is_reflected(monkeypatch, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await ensure_limits(session_factory, org_id)
    await update_limits(session_factory, org_id, max_storage_mb=2048)
    await seed_counters(session_factory, org_id, current_storage_mb=1536)

    async with _client(session_factory) as client:
        response = await client.get("/v1/organization/usage", headers=_headers(org_id))

    data = response.json()["data"]
    assert data["usage"]["storage_mb"] == 1536
    assert data["percentages"]["storage"] == 75


@pytest.mark.asyncio
async def test_data_layer_failure_returns_generic_500(monkeypatch, engine, session_factory) -> None:
    _apply_env(monkeypatch)
    org_id = await create_organization(session_factory)
    await ensure_limits(session_factory, org_id)
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE incidents"))

    # The server error handler responds before Starlette re-raises to the transport.
    async with _client(session_factory, raise_app_exceptions=False) as client:
        response = await client.get(
            "/v1/organization/quota/incidents", headers=_headers(org_id)
        )

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == {"code": "INTERNAL_ERROR", "message": "Internal server error"}
    assert body["meta"]["request_id"] == "req-test"
    raw = response.text.lower()
    assert "incidents" not in raw
    assert "select" not in raw
    assert "sqlite" not in raw


def test_openapi_documents_typed_denial_payloads() -> None:
    schema = create_app().openapi()

    components = schema["components"]["schemas"]
    quota = next(v for k, v in components.items() if k.startswith("QuotaExceededDetails"))
    assert {"resource_type", "current", "limit"} <= set(quota["required"])
    rate = next(v for k, v in components.items() if k.startswith("RateLimitDetails"))
    assert "reset_at" in rate["properties"]
    responses = schema["paths"]["/v1/organization/quota/{resource_type}"]["get"]["responses"]
    assert "QuotaErrorEnvelope" in responses["402"]["content"]["application/json"]["schema"]["$ref"]
    assert "RateLimitErrorEnvelope" in responses["429"]["content"]["application/json"]["schema"]["$ref"]
