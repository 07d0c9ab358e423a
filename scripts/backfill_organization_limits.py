from __future__ import annotations

import asyncio

from irguard.persistence.db import SessionLocal
from irguard.persistence.repos.organization_limits import list_organizations_without_limits
from irguard.services.quota.limits import ensure_limits


async def backfill() -> None:
    async with SessionLocal() as session:
        organization_ids = await list_organizations_without_limits(session)
    for organization_id in organization_ids:
        await ensure_limits(SessionLocal, organization_id)
    print(f"backfilled_organization_limits={len(organization_ids)}")


if __name__ == "__main__":
    asyncio.run(backfill())
