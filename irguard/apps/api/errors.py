from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from irguard.apps.api.response import QuotaExceededDetails, RateLimitDetails, error_response
from irguard.core.errors import (
    InvalidIncrementError,
    QuotaExceededError,
    RateLimitExceededError,
    UnknownResourceTypeError,
)
from irguard.persistence.guards import OrganizationPredicateError


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    402: "QUOTA_EXCEEDED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _default_code(status_code: int) -> str:
    # Map status codes to fallback error codes when none are provided.
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # Extract code/message/details from FastAPI HTTPException detail payloads.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def starlette_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": exc.errors()},
    )
    return JSONResponse(content=payload, status_code=422)


async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    # Actionable denial: current/limit plus an upgrade link.
    details = QuotaExceededDetails(
        resource_type=exc.resource_type,
        current=exc.current,
        limit=exc.limit,
        upgrade_url=exc.upgrade_url,
    )
    payload = error_response(request=request, code=exc.code, message=str(exc), details=details)
    return JSONResponse(content=payload, status_code=status.HTTP_402_PAYMENT_REQUIRED)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    details = RateLimitDetails(current=exc.current, limit=exc.limit, reset_at=exc.reset_at)
    payload = error_response(request=request, code=exc.code, message=str(exc), details=details)
    retry_after_s = _seconds_until(exc.reset_at)
    headers = {
        "Retry-After": str(retry_after_s),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": exc.reset_at.isoformat(),
    }
    return JSONResponse(
        content=payload, status_code=status.HTTP_429_TOO_MANY_REQUESTS, headers=headers
    )


async def invalid_quota_request_handler(
    request: Request, exc: InvalidIncrementError | UnknownResourceTypeError
) -> JSONResponse:
    payload = error_response(request=request, code="VALIDATION_ERROR", message=str(exc))
    return JSONResponse(content=payload, status_code=422)


async def organization_predicate_exception_handler(
    request: Request, exc: OrganizationPredicateError
) -> JSONResponse:
    # Return a stable 400 when a request reaches the store without organization scope.
    payload = error_response(
        request=request,
        code="ORGANIZATION_PREDICATE_REQUIRED",
        message=exc.message,
    )
    return JSONResponse(content=payload, status_code=400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking data-layer detail; return a stable internal error envelope.
    logger.exception("unhandled_error path=%s", request.url.path, exc_info=exc)
    payload = error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="Internal server error",
    )
    return JSONResponse(content=payload, status_code=500)


def _seconds_until(reset_at: datetime) -> int:
    remaining = (reset_at - datetime.now(timezone.utc)).total_seconds()
    return max(0, int(math.ceil(remaining)))
