"""
Postify Backend — Bearer Token Verification
=============================================

What:  Resolves the `Authorization: Bearer <jwt>` header to a User row.
How:   python-jose verifies the HS256 signature and expiry; the `sub` claim
       holds the user's UUID, which is looked up in the users table.
Who:   `get_current_user` is a FastAPI dependency on every mutating route.

Tokens are issued by the auth service that owns login/registration.
`create_access_token` mirrors its format and is used by tests and ops
scripts to mint tokens for existing users.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.exceptions import AuthenticationError
from app.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False: a missing header reaches get_current_user so the
# response uses our error format instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a token whose `sub` is the given user id."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": str(user_id), "exp": expire}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthenticationError: token is malformed, tampered with or expired.
    """
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(
            message="Token is not valid",
            context={"reason": str(e)},
        ) from e


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Return the authenticated User or raise AuthenticationError (401).

    Example usage in a route:
        @router.post("/posts")
        async def create_post(current_user: User = Depends(get_current_user)):
            ...
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="No token, authorization denied")

    claims = decode_access_token(credentials.credentials)

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError as e:
        raise AuthenticationError(message="Token is not valid") from e

    user = await db.get(User, user_id)
    if user is None:
        logger.warning("Token subject %s does not match any user", user_id)
        raise AuthenticationError(message="Token is not valid")

    # Picked up by the access log
    request.state.user_id = str(user.id)
    return user
