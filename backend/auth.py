"""Bearer-token authentication for the Izzy API."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

import config

logger = logging.getLogger(__name__)

# Missing header is not an error here: agents report "User not authenticated" themselves
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Verify signature, expiry and (when configured) audience of a JWT."""
    secret = config.jwt_secret()
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication is not configured",
        )

    audience = config.jwt_audience()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[config.JWT_ALGORITHM],
            audience=audience or None,
            options={"verify_aud": bool(audience)},
        )
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Profile id of the caller, or None when no token was sent."""
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
