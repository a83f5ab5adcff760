"""
Bearer token handling.

Identity is owned by an external service; this module only mints tokens (for
tooling and tests) and turns a verified token into an Actor. The ``sub`` claim
carries the user id and ``role`` is either ``user`` or ``admin``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from roombook.core.config import get_settings
from roombook.core.errors import AdminRequired
from roombook.core.logging import get_logger
from roombook.domain.lifecycle import Actor, ActorRole

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = dict(data)
    payload.setdefault("role", ActorRole.USER.value)
    payload["iat"] = now
    payload["exp"] = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc


def actor_from_claims(claims: dict[str, Any]) -> Actor:
    try:
        user_id = int(claims["sub"])
        role = ActorRole(claims.get("role", ActorRole.USER.value))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("Invalid authentication payload") from exc
    if role is ActorRole.SYSTEM:
        raise ValueError("System role cannot be claimed by a token")
    return Actor(id=user_id, role=role)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")
    try:
        actor = actor_from_claims(decode_access_token(credentials.credentials))
    except ValueError as exc:
        logger.warning("token_rejected", reason=str(exc))
        raise _unauthorized("Could not validate credentials") from None
    return actor


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise AdminRequired()
    return actor
