from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import case, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from irguard.domain.models import Organization, OrganizationLimits
from irguard.persistence.guards import organization_predicate, require_organization_id


# Cached counters that may be adjusted with relative updates.
COUNTER_COLUMNS = {
    "current_users": OrganizationLimits.current_users,
    "current_storage_mb": OrganizationLimits.current_storage_mb,
    "api_calls_this_hour": OrganizationLimits.api_calls_this_hour,
}


def _dialect_insert(session: AsyncSession):
    # Both dialects expose ON CONFLICT DO NOTHING; pick the one bound to this session.
    bind = session.bind
    if bind is not None and bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


async def get_limits_row(session: AsyncSession, organization_id: int) -> OrganizationLimits | None:
    result = await session.execute(
        select(OrganizationLimits).where(organization_predicate(OrganizationLimits, organization_id))
    )
    return result.scalar_one_or_none()


async def limits_row_exists(session: AsyncSession, organization_id: int) -> bool:
    result = await session.execute(
        select(OrganizationLimits.id).where(
            organization_predicate(OrganizationLimits, organization_id)
        )
    )
    return result.first() is not None


async def get_license_type(session: AsyncSession, organization_id: int) -> str | None:
    result = await session.execute(
        select(Organization.license_type).where(
            Organization.id == require_organization_id(organization_id)
        )
    )
    return result.scalar_one_or_none()


async def insert_limits_if_absent(
    session: AsyncSession, organization_id: int, values: dict[str, Any]
) -> bool:
    # Race-safe insert: the unique organization_id constraint absorbs concurrent creators.
    insert = _dialect_insert(session)
    stmt = insert(OrganizationLimits).values(
        organization_id=require_organization_id(organization_id), **values
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=[OrganizationLimits.organization_id])
    result = await session.execute(stmt)
    return bool(result.rowcount)


async def add_to_counter(
    session: AsyncSession,
    organization_id: int,
    column: str,
    delta: int,
    *,
    floor_at_zero: bool = False,
) -> int:
    # Relative update evaluated by the database (col = col + delta); never read-modify-write.
    target = COUNTER_COLUMNS[column]
    new_value = target + delta
    if floor_at_zero:
        new_value = case((target + delta < 0, 0), else_=target + delta)
    result = await session.execute(
        update(OrganizationLimits)
        .where(organization_predicate(OrganizationLimits, organization_id))
        .values({column: new_value})
    )
    return int(result.rowcount or 0)


async def reset_api_window(
    session: AsyncSession, organization_id: int, *, now: datetime, reset_at: datetime
) -> int:
    # Only rolls a window that is still unset or expired; a lost race updates nothing.
    result = await session.execute(
        update(OrganizationLimits)
        .where(organization_predicate(OrganizationLimits, organization_id))
        .where(
            or_(
                OrganizationLimits.api_reset_at.is_(None),
                OrganizationLimits.api_reset_at < now,
            )
        )
        .values(api_calls_this_hour=0, api_reset_at=reset_at)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)


async def update_limits_row(
    session: AsyncSession, organization_id: int, values: dict[str, Any]
) -> int:
    # Merge update: columns absent from values keep their stored settings.
    result = await session.execute(
        update(OrganizationLimits)
        .where(organization_predicate(OrganizationLimits, organization_id))
        .values(**values)
    )
    return int(result.rowcount or 0)


async def list_organizations_without_limits(session: AsyncSession) -> list[int]:
    stmt = (
        select(Organization.id)
        .outerjoin(OrganizationLimits, OrganizationLimits.organization_id == Organization.id)
        .where(OrganizationLimits.id.is_(None))
        .order_by(Organization.id)
    )
    result = await session.execute(stmt)
    return [int(row) for row in result.scalars().all()]
