from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.errors import LimitsInvariantError
from irguard.services.quota.evaluator import check_quota
from irguard.services.quota.limits import update_resource_count
from irguard.services.quota.rate_limiter import ApiRateLimiter, get_rate_limiter
from irguard.services.quota.types import QuotaCheckResult, ResourceType


T = TypeVar("T")


async def enforce_quota(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    resource_type: ResourceType | str,
    increment_by: int = 1,
) -> None:
    # Hard stop for write paths: raise the structured denial, create nothing.
    result = await check_quota(session_factory, organization_id, resource_type, increment_by)
    if not result.allowed:
        raise _denial(result)


async def enforce_rate_limit(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    *,
    limiter: ApiRateLimiter | None = None,
) -> None:
    # The one call site that couples the API-call check with its increment.
    limiter = limiter or get_rate_limiter()
    result = await limiter.check(session_factory, organization_id)
    if not result.allowed:
        raise _denial(result)
    await limiter.increment(session_factory, organization_id)


async def run_with_quota(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    resource_type: ResourceType | str,
    action: Callable[[], Awaitable[T]],
    *,
    increment_by: int = 1,
) -> T:
    """Run a resource-creating action behind quota enforcement.

    The action is never awaited after a denial. Cached counters are adjusted
    only once the action has completed successfully.
    """
    await enforce_quota(session_factory, organization_id, resource_type, increment_by)
    outcome = await action()
    await update_resource_count(session_factory, organization_id, resource_type, increment_by)
    return outcome


def _denial(result: QuotaCheckResult) -> Exception:
    # A deny without a structured error is a defect, never an admission.
    if result.error is None:
        return LimitsInvariantError("denied quota check carried no error payload")
    return result.error
