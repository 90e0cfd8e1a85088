"""
Bearer-token identity verifier.

Tokens are HS256 JWTs carrying ``sub`` (actor id), ``role`` (passenger or
driver) and ``exp``.  Decoding yields the ``Actor`` that every service call
takes as an argument.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from ridehail.config import settings
from ridehail.domain.entities import Actor
from ridehail.domain.enums import ActorRole
from ridehail.domain.exceptions import Unauthorized


def create_access_token(
    actor: Actor, expires_delta: Optional[timedelta] = None
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": str(actor.actor_id),
        "role": actor.role.value,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Actor:
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise Unauthorized("Invalid or expired access token. Please login again.")

    try:
        return Actor(actor_id=int(claims["sub"]), role=ActorRole(claims["role"]))
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid access token claims")
