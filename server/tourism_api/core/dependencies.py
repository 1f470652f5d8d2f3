"""FastAPI dependencies for database sessions and authentication."""

import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, Header
from jwt import PyJWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from .database import get_async_session
from .exceptions import AuthenticationError
from .security import decode_access_token

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("No token provided")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    return token


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Authentication dependency that validates Bearer tokens.

    The token subject is resolved against the user table on every request,
    so deactivated accounts lose access immediately.

    Args:
        authorization: Authorization header with Bearer token
        db: Database session

    Returns:
        User: The authenticated, active user

    Raises:
        AuthenticationError: If the token is missing, invalid, expired or
            belongs to an unknown or deactivated user
    """
    token = _extract_bearer_token(authorization)

    try:
        payload = decode_access_token(token)
        user_id = UUID(str(payload["sub"]))
    except (PyJWTError, KeyError, ValueError) as e:
        logger.info("Rejected bearer token", extra={"reason": str(e)})
        raise AuthenticationError("Invalid token")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return user


RequiredAuth = Depends(get_current_user)
DatabaseSession = Depends(get_db)
