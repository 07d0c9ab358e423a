from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from irguard.apps.api.response import ErrorEnvelope, QuotaErrorEnvelope, RateLimitErrorEnvelope


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error envelope example for OpenAPI docs.
    payload: dict[str, Any] = {
        "error": {"code": code, "message": message},
        "meta": {"request_id": "req_example", "api_version": "v1"},
    }
    if details:
        payload["error"]["details"] = details
    return payload


def _response(
    description: str, example: dict[str, Any], model: type[BaseModel] = ErrorEnvelope
) -> dict[str, Any]:
    return {
        "model": model,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


DEFAULT_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: _response(
        "Organization context missing",
        _error_example(code="AUTH_UNAUTHORIZED", message="Organization context required"),
    ),
    402: _response(
        "Quota exceeded",
        _error_example(
            code="QUOTA_EXCEEDED",
            message="Quota exceeded for incidents: 100/100",
            details={
                "resource_type": "incidents",
                "current": 100,
                "limit": 100,
                "upgrade_url": "/pricing?upgrade=incidents",
            },
        ),
        QuotaErrorEnvelope,
    ),
    422: _response(
        "Invalid quota request",
        _error_example(code="VALIDATION_ERROR", message="increment_by must be positive, got 0"),
    ),
    429: _response(
        "API rate limit exceeded",
        _error_example(
            code="RATE_LIMITED",
            message="Rate limit exceeded: 1000/1000. Resets at 2026-02-07T13:00:00+00:00",
            details={"current": 1000, "limit": 1000, "reset_at": "2026-02-07T13:00:00+00:00"},
        ),
        RateLimitErrorEnvelope,
    ),
    500: _response(
        "Internal error",
        _error_example(code="INTERNAL_ERROR", message="Internal server error"),
    ),
}
