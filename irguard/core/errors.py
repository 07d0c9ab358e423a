from __future__ import annotations

from datetime import datetime
from typing import Any


class IrGuardError(Exception):
    """Base error for irguard."""


class TierCatalogError(IrGuardError):
    """Tier default catalog is malformed."""


class LimitsInvariantError(IrGuardError):
    """Limits row missing after ensure_limits; indicates a defect, not a quota state."""


class InvalidIncrementError(IrGuardError, ValueError):
    """Quota increments must be positive integers."""


class InvalidLimitsOverrideError(IrGuardError, ValueError):
    """Limits override names an unknown column or carries an invalid value."""


class UnknownResourceTypeError(IrGuardError, ValueError):
    """Resource type is outside the governed set."""


class QuotaExceededError(IrGuardError):
    """Admission denied because a governed resource would exceed its ceiling."""

    status_code = 402
    code = "QUOTA_EXCEEDED"

    def __init__(
        self,
        resource_type: str,
        current: int,
        limit: int,
        upgrade_url: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.current = current
        self.limit = limit
        self.upgrade_url = upgrade_url
        super().__init__(f"Quota exceeded for {resource_type}: {current}/{limit}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "resource_type": self.resource_type,
            "current": self.current,
            "limit": self.limit,
            "upgrade_url": self.upgrade_url,
        }


class RateLimitExceededError(IrGuardError):
    """Admission denied because the hourly API-call ceiling is reached."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, current: int, limit: int, reset_at: datetime) -> None:
        self.current = current
        self.limit = limit
        self.reset_at = reset_at
        super().__init__(
            f"Rate limit exceeded: {current}/{limit}. Resets at {reset_at.isoformat()}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "current": self.current,
            "limit": self.limit,
            "reset_at": self.reset_at.isoformat(),
        }
