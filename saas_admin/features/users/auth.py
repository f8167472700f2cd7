"""
Authentication utilities for bearer JWT verification.
"""
from datetime import datetime, timedelta, timezone
import jwt
from fastapi import HTTPException, status

from saas_admin.core import config


def create_access_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Issue a signed token whose subject is `user_id`."""
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def verify_jwt_token(token: str) -> dict:
    """
    Verify a JWT token and return its payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload containing the user id under "sub"

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
