from __future__ import annotations

# Re-export the quota engine for centralized imports by write paths.

from irguard.services.quota.enforcement import enforce_quota, enforce_rate_limit, run_with_quota
from irguard.services.quota.evaluator import check_quota
from irguard.services.quota.limits import (
    add_storage_usage,
    ensure_limits,
    get_limits,
    update_limits,
    update_resource_count,
)
from irguard.services.quota.rate_limiter import (
    ApiRateLimiter,
    check_rate_limit,
    increment_api_usage,
)
from irguard.services.quota.summary import QuotaSummary, get_quota_summary
from irguard.services.quota.types import (
    UNLIMITED,
    QuotaCheckResult,
    ResourceLimits,
    ResourceType,
    ResourceUsage,
)
from irguard.services.quota.usage import get_current_usage

__all__ = [
    "enforce_quota",
    "enforce_rate_limit",
    "run_with_quota",
    "check_quota",
    "add_storage_usage",
    "ensure_limits",
    "get_limits",
    "update_limits",
    "update_resource_count",
    "ApiRateLimiter",
    "check_rate_limit",
    "increment_api_usage",
    "QuotaSummary",
    "get_quota_summary",
    "UNLIMITED",
    "QuotaCheckResult",
    "ResourceLimits",
    "ResourceType",
    "ResourceUsage",
    "get_current_usage",
]
