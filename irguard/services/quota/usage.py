from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.persistence.repos.organization_limits import get_limits_row
from irguard.persistence.repos.usage_counts import COUNT_SOURCES, count_for_organization
from irguard.services.quota.types import ResourceUsage


async def _count(
    session_factory: async_sessionmaker[AsyncSession], resource: str, organization_id: int
) -> int:
    # Each count gets its own session so the queries can run concurrently.
    async with session_factory() as session:
        return await count_for_organization(session, COUNT_SOURCES[resource], organization_id)


async def _cached_counters(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> tuple[int, int]:
    # Storage and hourly API calls are not derivable from a count query.
    async with session_factory() as session:
        row = await get_limits_row(session, organization_id)
    if row is None:
        return 0, 0
    return int(row.current_storage_mb or 0), int(row.api_calls_this_hour or 0)


async def get_current_usage(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> ResourceUsage:
    """Return a fresh usage snapshot for one organization.

    Count queries are issued concurrently and any failure propagates; a failed
    count must never be reported as zero usage.
    """
    users, incidents, assets, runbooks, templates, cached = await asyncio.gather(
        _count(session_factory, "users", organization_id),
        _count(session_factory, "incidents", organization_id),
        _count(session_factory, "assets", organization_id),
        _count(session_factory, "runbooks", organization_id),
        _count(session_factory, "templates", organization_id),
        _cached_counters(session_factory, organization_id),
    )
    storage_mb, api_calls = cached
    return ResourceUsage(
        users=users,
        incidents=incidents,
        assets=assets,
        runbooks=runbooks,
        templates=templates,
        storage_mb=storage_mb,
        api_calls_this_hour=api_calls,
    )
