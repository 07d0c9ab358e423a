from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from irguard.core.errors import (
    InvalidIncrementError,
    QuotaExceededError,
    RateLimitExceededError,
    UnknownResourceTypeError,
)


UNLIMITED = -1


class ResourceType(str, Enum):
    USERS = "users"
    INCIDENTS = "incidents"
    ASSETS = "assets"
    RUNBOOKS = "runbooks"
    TEMPLATES = "templates"
    STORAGE = "storage"


@dataclass(frozen=True)
class ResourceUsage:
    # Point-in-time usage snapshot; never persisted.
    users: int
    incidents: int
    assets: int
    runbooks: int
    templates: int
    storage_mb: int
    api_calls_this_hour: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ResourceLimits:
    # Ceilings per governed resource; None means unlimited.
    max_users: int | None
    max_incidents: int | None
    max_assets: int | None
    max_runbooks: int | None
    max_templates: int | None
    max_storage_mb: int
    api_rate_limit: int

    def to_dict(self) -> dict[str, int | None]:
        return asdict(self)


@dataclass(frozen=True)
class QuotaCheckResult:
    # Admission decision; limit/remaining use -1 for unlimited.
    allowed: bool
    current: int
    limit: int
    remaining: int
    error: QuotaExceededError | RateLimitExceededError | None = None

    @property
    def unlimited(self) -> bool:
        return self.limit == UNLIMITED

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "allowed": self.allowed,
            "current": self.current,
            "limit": self.limit,
            "remaining": self.remaining,
        }
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload


# Fixed (usage field, limits field) pairs; the governed set is closed.
RESOURCE_FIELDS: dict[ResourceType, tuple[str, str]] = {
    ResourceType.USERS: ("users", "max_users"),
    ResourceType.INCIDENTS: ("incidents", "max_incidents"),
    ResourceType.ASSETS: ("assets", "max_assets"),
    ResourceType.RUNBOOKS: ("runbooks", "max_runbooks"),
    ResourceType.TEMPLATES: ("templates", "max_templates"),
    ResourceType.STORAGE: ("storage_mb", "max_storage_mb"),
}


def parse_resource_type(value: ResourceType | str) -> ResourceType:
    # Fail loudly on anything outside the governed set.
    if isinstance(value, ResourceType):
        return value
    try:
        return ResourceType(value)
    except ValueError as exc:
        raise UnknownResourceTypeError(f"Invalid resource type: {value!r}") from exc


def validate_increment(increment_by: int) -> int:
    # Reject zero, negative and non-integer increments before evaluation.
    if isinstance(increment_by, bool) or not isinstance(increment_by, int):
        raise InvalidIncrementError(f"increment_by must be an integer, got {increment_by!r}")
    if increment_by <= 0:
        raise InvalidIncrementError(f"increment_by must be positive, got {increment_by}")
    return increment_by


def select_pair(
    usage: ResourceUsage, limits: ResourceLimits, resource_type: ResourceType
) -> tuple[int, int | None]:
    usage_field, limit_field = RESOURCE_FIELDS[resource_type]
    return getattr(usage, usage_field), getattr(limits, limit_field)
