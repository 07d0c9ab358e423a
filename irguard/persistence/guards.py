from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrganizationPredicateError(RuntimeError):
    # Surface missing organization predicates before a query can scan other tenants.
    message: str


def require_organization_id(organization_id: int | None) -> int:
    # Organization ids are positive integers; anything else would widen the query scope.
    if isinstance(organization_id, bool) or not isinstance(organization_id, int) or organization_id <= 0:
        raise OrganizationPredicateError(
            f"Organization predicate required but organization_id is {organization_id!r}"
        )
    return organization_id


def organization_predicate(model, organization_id: int) -> object:
    # Build organization predicates through a single helper to guarantee guard coverage.
    return model.organization_id == require_organization_id(organization_id)
