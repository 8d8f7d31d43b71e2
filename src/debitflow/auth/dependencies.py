"""FastAPI dependencies for bearer authentication.

Usage:
    @router.post("/extractions")
    def extract(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .jwt import decode_token

# auto_error=False so a missing header yields 401 instead of 403
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller, taken from the token claims."""

    id: UUID
    email: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Validate the bearer token and return the caller.

    Raises:
        HTTPException 401: Token missing, invalid, expired or without a user id
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing bearer token")

    try:
        payload = decode_token(credentials.credentials)
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise _unauthorized("Invalid token: missing user ID claim")
        user_id = UUID(user_id_str)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(str(e))
    except ValueError as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")

    return CurrentUser(id=user_id, email=payload.get("email"))
