from __future__ import annotations

import pytest

from irguard.domain.models import Incident
from irguard.persistence.guards import (
    OrganizationPredicateError,
    organization_predicate,
    require_organization_id,
)


@pytest.mark.parametrize("value", [None, 0, -3, True, "7"])
def test_invalid_organization_ids_are_rejected(value) -> None:
    with pytest.raises(OrganizationPredicateError):
        require_organization_id(value)


def test_organization_predicate_binds_the_organization_column() -> None:
    clause = organization_predicate(Incident, 42)
    compiled = clause.compile(compile_kwargs={"literal_binds": True})
    assert str(compiled) == "incidents.organization_id = 42"
