from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.config import get_settings
from irguard.services.quota.limits import ensure_limits, get_limits, require_limits, to_resource_limits
from irguard.services.quota.types import ResourceLimits, ResourceType, ResourceUsage, select_pair
from irguard.services.quota.usage import get_current_usage


@dataclass(frozen=True)
class QuotaWarning:
    resource: str
    percentage: int
    message: str


@dataclass(frozen=True)
class QuotaSummary:
    usage: ResourceUsage
    limits: ResourceLimits
    percentages: dict[str, int]
    warnings: list[QuotaWarning]

    def to_dict(self) -> dict[str, Any]:
        return {
            "usage": self.usage.to_dict(),
            "limits": self.limits.to_dict(),
            "percentages": dict(self.percentages),
            "warnings": [
                {"resource": w.resource, "percentage": w.percentage, "message": w.message}
                for w in self.warnings
            ],
        }


def usage_percentage(current: int, limit: int | None) -> int:
    # Unlimited resources report 0 and never warn; a zero ceiling reads as fully used.
    if limit is None:
        return 0
    if limit <= 0:
        return 100 if current > 0 else 0
    # Integer round-half-up of current / limit * 100.
    return (current * 200 + limit) // (2 * limit)


def build_quota_summary(
    usage: ResourceUsage, limits: ResourceLimits, *, threshold_pct: int
) -> QuotaSummary:
    percentages: dict[str, int] = {}
    warnings: list[QuotaWarning] = []
    for resource in ResourceType:
        current, limit = select_pair(usage, limits, resource)
        percentage = usage_percentage(current, limit)
        percentages[resource.value] = percentage
        if limit is not None and percentage >= threshold_pct:
            warnings.append(
                QuotaWarning(
                    resource=resource.value,
                    percentage=percentage,
                    message=f"{resource.value} usage is at {percentage}%",
                )
            )
    return QuotaSummary(usage=usage, limits=limits, percentages=percentages, warnings=warnings)


async def get_quota_summary(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> QuotaSummary:
    # Read-only beyond lazy limits creation; drives dashboard nudges.
    await ensure_limits(session_factory, organization_id)
    usage, row = await asyncio.gather(
        get_current_usage(session_factory, organization_id),
        get_limits(session_factory, organization_id),
    )
    limits = to_resource_limits(require_limits(row, organization_id))
    return build_quota_summary(
        usage, limits, threshold_pct=get_settings().quota_warning_threshold_pct
    )
