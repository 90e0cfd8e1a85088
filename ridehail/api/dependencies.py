"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.domain.entities import Actor
from ridehail.domain.exceptions import Unauthorized
from ridehail.infrastructure.database import async_session_factory
from ridehail.infrastructure.tokens import decode_access_token


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_actor(
    authorization: Optional[str] = Header(None),
) -> Actor:
    """
    Resolve the verified caller from ``Authorization: Bearer <token>``.

    Every ride endpoint depends on this; the resulting ``Actor`` is passed
    explicitly into the service layer.
    """
    if not authorization:
        raise Unauthorized("Access token is required")
    if not authorization.startswith("Bearer "):
        raise Unauthorized("Invalid authorization format. Use: Bearer <token>")
    return decode_access_token(authorization[7:])
