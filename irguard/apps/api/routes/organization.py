from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.apps.api.deps import (
    current_organization_id,
    get_session_factory,
    require_api_rate_limit,
)
from irguard.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from irguard.apps.api.response import SuccessEnvelope, success_response
from irguard.services.quota.evaluator import check_quota
from irguard.services.quota.limits import (
    ensure_limits,
    feature_flags,
    get_license_tier,
    get_limits,
    require_limits,
    to_resource_limits,
)
from irguard.services.quota.summary import get_quota_summary


router = APIRouter(
    prefix="/organization",
    tags=["organization"],
    responses=DEFAULT_ERROR_RESPONSES,
    dependencies=[Depends(require_api_rate_limit)],
)


class LimitsResponse(BaseModel):
    organization_id: int
    license_type: str
    limits: dict[str, int | None]
    features: dict[str, bool]


class UsageResponse(BaseModel):
    usage: dict[str, int]
    limits: dict[str, int | None]
    percentages: dict[str, int]
    warnings: list[dict[str, Any]]


class QuotaCheckResponse(BaseModel):
    resource_type: str
    allowed: bool
    current: int
    limit: int
    remaining: int
    error: dict[str, Any] | None = None


@router.get("/limits", response_model=SuccessEnvelope[LimitsResponse])
async def get_organization_limits(
    request: Request,
    organization_id: int = Depends(current_organization_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    # Limits rows are created lazily on first read.
    await ensure_limits(session_factory, organization_id)
    row = require_limits(await get_limits(session_factory, organization_id), organization_id)
    license_type = await get_license_tier(session_factory, organization_id)
    payload = LimitsResponse(
        organization_id=organization_id,
        license_type=license_type,
        limits=to_resource_limits(row).to_dict(),
        features=feature_flags(row),
    )
    return success_response(request=request, data=payload.model_dump())


@router.get("/usage", response_model=SuccessEnvelope[UsageResponse])
async def get_organization_usage(
    request: Request,
    organization_id: int = Depends(current_organization_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    summary = await get_quota_summary(session_factory, organization_id)
    payload = UsageResponse(**summary.to_dict())
    return success_response(request=request, data=payload.model_dump())


@router.get("/quota/{resource_type}", response_model=SuccessEnvelope[QuotaCheckResponse])
async def check_organization_quota(
    request: Request,
    resource_type: str,
    increment_by: int = Query(default=1),
    organization_id: int = Depends(current_organization_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> dict:
    # Dry-run admission check for UIs that pre-flight a create form.
    result = await check_quota(session_factory, organization_id, resource_type, increment_by)
    payload = QuotaCheckResponse(resource_type=resource_type, **result.to_dict())
    return success_response(request=request, data=payload.model_dump())
