from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from irguard.core.config import get_settings
from irguard.persistence.db import SessionLocal
from irguard.services.quota.enforcement import enforce_rate_limit


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    # Quota checks open several short sessions, so handlers receive the factory.
    return SessionLocal


def current_organization_id(
    x_organization_id: int | None = Header(default=None, alias="X-Organization-Id"),
) -> int:
    # Organization context is resolved upstream; reject requests that arrive without it.
    if x_organization_id is None or x_organization_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "AUTH_UNAUTHORIZED", "message": "Organization context required"},
        )
    return x_organization_id


async def require_api_rate_limit(
    organization_id: int = Depends(current_organization_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> None:
    # Consume one API call per request; denials surface as 429 via the app handlers.
    if not get_settings().rate_limit_enabled:
        return
    await enforce_rate_limit(session_factory, organization_id)
