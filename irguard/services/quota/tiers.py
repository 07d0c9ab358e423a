"""Declarative subscription tier catalog.

Each tier maps to a :class:`TierLimits` record used to seed an organization's
limits row the first time it is accessed. Count-based ceilings may be ``None``
(unlimited); storage and the API rate are always bounded. The catalog is
validated when this module is imported so a malformed tier fails at startup
rather than during an admission check.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from irguard.core.config import get_settings
from irguard.core.errors import TierCatalogError


TIER_STARTER = "starter"
TIER_PROFESSIONAL = "professional"
TIER_ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class TierLimits:
    max_users: int | None
    max_incidents: int | None
    max_assets: int | None
    max_runbooks: int | None
    max_templates: int | None
    max_storage_mb: int
    api_rate_limit: int
    custom_domains_allowed: bool = False
    whitelabeling_allowed: bool = False
    api_access_allowed: bool = True
    sso_allowed: bool = False

    def as_row_values(self) -> dict[str, Any]:
        return asdict(self)


TIER_CATALOG: dict[str, TierLimits] = {
    TIER_STARTER: TierLimits(
        max_users=5,
        max_incidents=100,
        max_assets=500,
        max_runbooks=50,
        max_templates=100,
        max_storage_mb=1024,
        api_rate_limit=1000,
    ),
    TIER_PROFESSIONAL: TierLimits(
        max_users=25,
        max_incidents=1000,
        max_assets=5000,
        max_runbooks=500,
        max_templates=1000,
        max_storage_mb=10240,
        api_rate_limit=10000,
        custom_domains_allowed=True,
        sso_allowed=True,
    ),
    TIER_ENTERPRISE: TierLimits(
        max_users=100,
        max_incidents=None,
        max_assets=None,
        max_runbooks=None,
        max_templates=None,
        max_storage_mb=102400,
        api_rate_limit=100000,
        custom_domains_allowed=True,
        whitelabeling_allowed=True,
        sso_allowed=True,
    ),
}

OPTIONAL_LIMIT_FIELDS = ("max_users", "max_incidents", "max_assets", "max_runbooks", "max_templates")
BOUNDED_LIMIT_FIELDS = ("max_storage_mb", "api_rate_limit")
FEATURE_FLAG_FIELDS = (
    "custom_domains_allowed",
    "whitelabeling_allowed",
    "api_access_allowed",
    "sso_allowed",
)


def limit_value_problem(field: str, value: object) -> str | None:
    """Describe why ``value`` is not acceptable for limits column ``field``.

    Returns ``None`` when the value is valid. Count-based ceilings accept
    ``None`` (unlimited); storage and the API rate are always bounded.
    """
    if field in FEATURE_FLAG_FIELDS:
        return None if isinstance(value, bool) else f"{field} must be a bool"
    if field not in OPTIONAL_LIMIT_FIELDS and field not in BOUNDED_LIMIT_FIELDS:
        return f"{field} is not an adjustable limit"
    if value is None and field in OPTIONAL_LIMIT_FIELDS:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        if field in OPTIONAL_LIMIT_FIELDS:
            return f"{field} must be a non-negative int or None"
        return f"{field} must be a non-negative int"
    return None


def validate_tier_catalog(catalog: dict[str, TierLimits], default_tier: str) -> None:
    if default_tier not in catalog:
        raise TierCatalogError(f"default tier {default_tier!r} missing from catalog")
    for tier, limits in catalog.items():
        for field, value in limits.as_row_values().items():
            problem = limit_value_problem(field, value)
            if problem is not None:
                raise TierCatalogError(f"tier {tier!r}: {problem}")


def resolve_tier(license_type: str | None) -> str:
    # Unknown or missing license types fall back to the configured default tier.
    normalized = (license_type or "").strip().lower()
    if normalized in TIER_CATALOG:
        return normalized
    return get_settings().default_license_tier


def defaults_for_tier(license_type: str | None) -> TierLimits:
    return TIER_CATALOG[resolve_tier(license_type)]


validate_tier_catalog(TIER_CATALOG, get_settings().default_license_tier)
