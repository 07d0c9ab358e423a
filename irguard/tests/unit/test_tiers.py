from __future__ import annotations

from dataclasses import replace

import pytest

from irguard.core.config import get_settings
from irguard.core.errors import TierCatalogError
from irguard.services.quota.tiers import (
    TIER_CATALOG,
    TIER_ENTERPRISE,
    TIER_PROFESSIONAL,
    TIER_STARTER,
    defaults_for_tier,
    limit_value_problem,
    resolve_tier,
    validate_tier_catalog,
)


def test_catalog_passes_validation() -> None:
    validate_tier_catalog(TIER_CATALOG, "starter")


def test_enterprise_is_unlimited_for_counts_but_bounds_storage_and_api() -> None:
    enterprise = TIER_CATALOG[TIER_ENTERPRISE]
    assert enterprise.max_incidents is None
    assert enterprise.max_assets is None
    assert enterprise.max_runbooks is None
    assert enterprise.max_templates is None
    assert enterprise.max_users == 100
    assert enterprise.max_storage_mb == 102400
    assert enterprise.api_rate_limit == 100000


def test_resolve_tier_normalizes_and_falls_back() -> None:
    assert resolve_tier("Professional ") == TIER_PROFESSIONAL
    assert resolve_tier(None) == TIER_STARTER
    assert resolve_tier("platinum") == TIER_STARTER
    assert defaults_for_tier("enterprise") is TIER_CATALOG[TIER_ENTERPRISE]


def test_resolve_tier_uses_configured_default(monkeypatch) -> None:
    monkeypatch.setenv("DEFAULT_LICENSE_TIER", "professional")
    get_settings.cache_clear()
    assert resolve_tier("unknown") == TIER_PROFESSIONAL


def test_validation_rejects_missing_default_tier() -> None:
    with pytest.raises(TierCatalogError):
        validate_tier_catalog(TIER_CATALOG, "gold")


def test_validation_rejects_negative_and_unbounded_values() -> None:
    starter = TIER_CATALOG[TIER_STARTER]
    with pytest.raises(TierCatalogError):
        validate_tier_catalog({"starter": replace(starter, max_assets=-1)}, "starter")
    with pytest.raises(TierCatalogError):
        validate_tier_catalog({"starter": replace(starter, max_storage_mb=None)}, "starter")


def test_zero_is_a_valid_exhausted_limit() -> None:
    starter = TIER_CATALOG[TIER_STARTER]
    validate_tier_catalog({"starter": replace(starter, max_runbooks=0)}, "starter")


@pytest.mark.parametrize(
    ("field", "value", "valid"),
    [
        ("max_users", None, True),
        ("max_users", 0, True),
        ("max_users", -1, False),
        ("max_users", True, False),
        ("max_storage_mb", None, False),
        ("api_rate_limit", 10, True),
        ("sso_allowed", False, True),
        ("sso_allowed", 0, False),
        ("current_storage_mb", 5, False),
    ],
)
def test_limit_value_problem(field, value, valid) -> None:
    assert (limit_value_problem(field, value) is None) is valid


def test_validation_rejects_bool_ceilings() -> None:
    starter = TIER_CATALOG[TIER_STARTER]
    with pytest.raises(TierCatalogError):
        validate_tier_catalog({"starter": replace(starter, max_users=True)}, "starter")
