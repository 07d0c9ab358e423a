from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.config import get_settings
from irguard.core.errors import QuotaExceededError
from irguard.services.quota.limits import ensure_limits, get_limits, require_limits, to_resource_limits
from irguard.services.quota.types import (
    UNLIMITED,
    QuotaCheckResult,
    ResourceType,
    parse_resource_type,
    select_pair,
    validate_increment,
)
from irguard.services.quota.usage import get_current_usage


logger = logging.getLogger(__name__)


def upgrade_url_for(resource: ResourceType) -> str:
    return f"{get_settings().quota_upgrade_path}?upgrade={resource.value}"


def evaluate(
    resource: ResourceType, current: int, limit: int | None, increment_by: int
) -> QuotaCheckResult:
    # Pure admission decision over one (current, limit) pair.
    if limit is None:
        return QuotaCheckResult(allowed=True, current=current, limit=UNLIMITED, remaining=UNLIMITED)

    if current + increment_by > limit:
        error = QuotaExceededError(resource.value, current, limit, upgrade_url_for(resource))
        return QuotaCheckResult(
            allowed=False,
            current=current,
            limit=limit,
            remaining=max(limit - current, 0),
            error=error,
        )

    # Remaining counts the slots left once this admission is consumed.
    return QuotaCheckResult(
        allowed=True, current=current, limit=limit, remaining=limit - current - increment_by
    )


async def check_quota(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    resource_type: ResourceType | str,
    increment_by: int = 1,
) -> QuotaCheckResult:
    """Decide whether ``increment_by`` more units of a resource may be created.

    Performs no writes beyond the lazy limits-row creation in ``ensure_limits``.
    Invalid increments and unknown resource types raise before any query runs.
    """
    resource = parse_resource_type(resource_type)
    validate_increment(increment_by)

    await ensure_limits(session_factory, organization_id)
    usage, row = await asyncio.gather(
        get_current_usage(session_factory, organization_id),
        get_limits(session_factory, organization_id),
    )
    limits = to_resource_limits(require_limits(row, organization_id))

    current, limit = select_pair(usage, limits, resource)
    result = evaluate(resource, current, limit, increment_by)
    if not result.allowed:
        logger.info(
            "quota_denied org=%s resource=%s current=%s limit=%s increment=%s",
            organization_id,
            resource.value,
            current,
            limit,
            increment_by,
        )
    return result
