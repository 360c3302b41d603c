"""
Bearer token authentication.

Tokens are HS256 JWTs carrying sub, username, role (admin or customer),
an optional client_id for customers, and exp. Each request turns its
token into an Actor; nothing about the caller is kept between requests.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import settings
from models.auth import Actor, Role
from exceptions import AuthenticationError, PermissionDeniedError

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(
    actor_id: str,
    username: str,
    role: Role,
    client_id: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Issue a signed access token."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.jwt_expire_minutes
    )
    payload = {
        "sub": actor_id,
        "username": username,
        "role": Role(role).value,
        "exp": expire,
    }
    if client_id:
        payload["client_id"] = client_id
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Actor:
    """
    Verify a token and build the Actor it describes.

    Raises:
        AuthenticationError: If the token is expired, forged or malformed
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.info("invalid_token", error=str(e))
        raise AuthenticationError()

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Token carries an unknown role")

    return Actor(
        id=str(payload["sub"]),
        username=payload.get("username") or str(payload["sub"]),
        role=role,
        client_id=payload.get("client_id"),
    )


def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Actor:
    """FastAPI dependency: any authenticated caller."""
    if not credentials:
        raise AuthenticationError()
    return decode_token(credentials.credentials)


def require_admin(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    """FastAPI dependency: admin callers only."""
    if actor.role != Role.ADMIN:
        logger.warning("admin_route_forbidden", actor_id=actor.id, role=actor.role.value)
        raise PermissionDeniedError("Admin access required")
    return actor


def require_customer(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    """FastAPI dependency: customer callers only."""
    if actor.role != Role.CUSTOMER:
        raise PermissionDeniedError("Customer access required")
    return actor


AdminActor = Annotated[Actor, Depends(require_admin)]
CustomerActor = Annotated[Actor, Depends(require_customer)]
