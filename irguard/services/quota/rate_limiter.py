from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.config import get_settings
from irguard.core.errors import RateLimitExceededError
from irguard.persistence.repos.organization_limits import (
    add_to_counter,
    get_limits_row,
    reset_api_window,
)
from irguard.services.quota.limits import ensure_limits, require_limits
from irguard.services.quota.types import QuotaCheckResult


logger = logging.getLogger(__name__)


class ApiRateLimiter:
    """Rolling-hour API call limiter backed by the organization limits row.

    ``check`` and ``increment`` are deliberately separate: a caller may check,
    decide not to proceed, and never consume a call. Bursts that interleave
    check and increment for one organization can overshoot slightly.
    """

    def __init__(self, *, time_provider: Callable[[], datetime] | None = None) -> None:
        # Allow time injection for deterministic window tests.
        self._time_provider = time_provider or _utc_now

    async def check(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        organization_id: int,
    ) -> QuotaCheckResult:
        await ensure_limits(session_factory, organization_id)
        now = self._time_provider()
        window = timedelta(seconds=get_settings().api_rate_window_seconds)

        async with session_factory() as session:
            row = require_limits(await get_limits_row(session, organization_id), organization_id)
            limit = int(row.api_rate_limit)
            current = int(row.api_calls_this_hour or 0)
            reset_at = _as_utc(row.api_reset_at)

            if reset_at is None or now > reset_at:
                # Rollover: only an unset or expired window is reset, so repeats are harmless.
                new_reset_at = now + window
                rolled = await reset_api_window(
                    session, organization_id, now=now, reset_at=new_reset_at
                )
                await session.commit()
                if rolled:
                    reset_at = new_reset_at
                    current = 0
                    logger.debug(
                        "api_window_reset org=%s reset_at=%s", organization_id, reset_at.isoformat()
                    )
                else:
                    # Another request rolled the window first; use its counter.
                    await session.refresh(row)
                    current = int(row.api_calls_this_hour or 0)
                    reset_at = _as_utc(row.api_reset_at)

        if current >= limit:
            logger.info(
                "rate_limit_denied org=%s current=%s limit=%s reset_at=%s",
                organization_id,
                current,
                limit,
                reset_at.isoformat(),
            )
            return QuotaCheckResult(
                allowed=False,
                current=current,
                limit=limit,
                remaining=0,
                error=RateLimitExceededError(current, limit, reset_at),
            )
        return QuotaCheckResult(allowed=True, current=current, limit=limit, remaining=limit - current)

    async def increment(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        organization_id: int,
    ) -> None:
        # Atomic +1 at the storage layer.
        async with session_factory() as session:
            await add_to_counter(session, organization_id, "api_calls_this_hour", 1)
            await session.commit()


_rate_limiter: ApiRateLimiter | None = None


def get_rate_limiter() -> ApiRateLimiter:
    # Cache the limiter so every call site shares one time provider.
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = ApiRateLimiter()
    return _rate_limiter


def reset_rate_limiter() -> None:
    # Reset the cached limiter for deterministic tests.
    global _rate_limiter
    _rate_limiter = None


async def check_rate_limit(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> QuotaCheckResult:
    return await get_rate_limiter().check(session_factory, organization_id)


async def increment_api_usage(
    session_factory: async_sessionmaker[AsyncSession], organization_id: int
) -> None:
    await get_rate_limiter().increment(session_factory, organization_id)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # Some drivers return naive timestamps; stored values are always UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
