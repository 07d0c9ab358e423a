from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.errors import InvalidLimitsOverrideError, LimitsInvariantError
from irguard.domain.models import OrganizationLimits
from irguard.persistence.repos.organization_limits import (
    add_to_counter,
    get_license_type,
    get_limits_row,
    insert_limits_if_absent,
    limits_row_exists,
    update_limits_row,
)
from irguard.services.quota.tiers import defaults_for_tier, limit_value_problem, resolve_tier
from irguard.services.quota.types import (
    ResourceLimits,
    ResourceType,
    parse_resource_type,
    validate_increment,
)


logger = logging.getLogger(__name__)

# Only these resources keep a cached counter; the rest are always live-counted.
_CACHED_COUNTERS = {
    ResourceType.USERS: "current_users",
    ResourceType.STORAGE: "current_storage_mb",
}


async def ensure_limits(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> None:
    # Idempotent lazy creation; concurrent callers converge on a single row.
    async with session_factory() as session:
        if await limits_row_exists(session, organization_id):
            return
        license_type = await get_license_type(session, organization_id)
        defaults = defaults_for_tier(license_type)
        created = await insert_limits_if_absent(
            session, organization_id, defaults.as_row_values()
        )
        await session.commit()
    if created:
        logger.info(
            "organization_limits_created org=%s tier=%s", organization_id, resolve_tier(license_type)
        )


async def get_limits(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> OrganizationLimits | None:
    async with session_factory() as session:
        return await get_limits_row(session, organization_id)


def require_limits(row: OrganizationLimits | None, organization_id: int) -> OrganizationLimits:
    # A missing row after ensure_limits is a defect, never an "unlimited" state.
    if row is None:
        logger.error("organization_limits_missing org=%s", organization_id)
        raise LimitsInvariantError(f"limits record missing for organization {organization_id}")
    return row


def to_resource_limits(row: OrganizationLimits) -> ResourceLimits:
    return ResourceLimits(
        max_users=row.max_users,
        max_incidents=row.max_incidents,
        max_assets=row.max_assets,
        max_runbooks=row.max_runbooks,
        max_templates=row.max_templates,
        max_storage_mb=int(row.max_storage_mb),
        api_rate_limit=int(row.api_rate_limit),
    )


def feature_flags(row: OrganizationLimits) -> dict[str, bool]:
    return {
        "custom_domains": bool(row.custom_domains_allowed),
        "whitelabeling": bool(row.whitelabeling_allowed),
        "api_access": bool(row.api_access_allowed),
        "sso": bool(row.sso_allowed),
    }


async def update_resource_count(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    resource_type: ResourceType | str,
    increment_by: int = 1,
) -> None:
    # Adjust cached counters after a successful write; live-counted resources are untouched.
    resource = parse_resource_type(resource_type)
    validate_increment(increment_by)
    column = _CACHED_COUNTERS.get(resource)
    if column is None:
        return
    async with session_factory() as session:
        await add_to_counter(session, organization_id, column, increment_by)
        await session.commit()


async def add_storage_usage(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    delta_mb: int,
) -> None:
    # Negative deltas release storage; the database clamps the counter at zero.
    if delta_mb == 0:
        return
    async with session_factory() as session:
        await add_to_counter(
            session, organization_id, "current_storage_mb", delta_mb, floor_at_zero=True
        )
        await session.commit()


async def get_license_tier(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> str:
    async with session_factory() as session:
        license_type = await get_license_type(session, organization_id)
    return resolve_tier(license_type)


async def update_limits(
    session_factory: async_sessionmaker[AsyncSession],
    organization_id: int,
    **overrides: object,
) -> OrganizationLimits:
    """Apply an administrative override to an organization's limits.

    Omitted fields keep their current values. Count-based ceilings accept
    ``None`` for unlimited; storage and the API rate must stay bounded. The
    whole override is validated before anything is written.
    """
    problems: list[str] = []
    for field, value in overrides.items():
        problem = limit_value_problem(field, value)
        if problem is not None:
            problems.append(problem)
    if problems:
        raise InvalidLimitsOverrideError("; ".join(problems))

    await ensure_limits(session_factory, organization_id)
    async with session_factory() as session:
        if overrides:
            await update_limits_row(session, organization_id, dict(overrides))
            await session.commit()
        row = require_limits(await get_limits_row(session, organization_id), organization_id)
        await session.refresh(row)
    if overrides:
        logger.info(
            "organization_limits_updated org=%s fields=%s",
            organization_id,
            ",".join(sorted(overrides)),
        )
    return row
