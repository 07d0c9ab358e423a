from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from irguard.domain.models import Asset, CommunicationTemplate, Incident, Runbook, TeamMember
from irguard.persistence.guards import organization_predicate


COUNT_SOURCES = {
    "users": TeamMember,
    "incidents": Incident,
    "assets": Asset,
    "runbooks": Runbook,
    "templates": CommunicationTemplate,
}


async def count_for_organization(session: AsyncSession, model, organization_id: int) -> int:
    stmt = select(func.count()).select_from(model).where(organization_predicate(model, organization_id))
    result = await session.execute(stmt)
    return int(result.scalar_one())
