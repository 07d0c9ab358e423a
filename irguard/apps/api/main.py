from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from irguard.apps.api.errors import (
    http_exception_handler,
    invalid_quota_request_handler,
    organization_predicate_exception_handler,
    quota_exceeded_handler,
    rate_limit_exceeded_handler,
    starlette_http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from irguard.apps.api.response import API_VERSION
from irguard.apps.api.routes.organization import router as organization_router
from irguard.core.config import get_settings
from irguard.core.errors import (
    InvalidIncrementError,
    QuotaExceededError,
    RateLimitExceededError,
    UnknownResourceTypeError,
)
from irguard.core.logging import configure_logging
from irguard.persistence.guards import OrganizationPredicateError


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=f"{get_settings().app_name} API")

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(QuotaExceededError, quota_exceeded_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_exceeded_handler)
    app.add_exception_handler(InvalidIncrementError, invalid_quota_request_handler)
    app.add_exception_handler(UnknownResourceTypeError, invalid_quota_request_handler)
    app.add_exception_handler(OrganizationPredicateError, organization_predicate_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(organization_router, prefix=f"/{API_VERSION}")

    return app


app = create_app()
