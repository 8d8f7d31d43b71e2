"""JWT token generation and validation

Tokens identify the submitting user; no user table is consulted.

Claims:
- sub: User ID as UUID string (required)
- email: Optional display address
- iat / exp: Issued-at and expiration timestamps

Algorithm and secret come from settings (JWT_ALGORITHM, JWT_SECRET).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from debitflow.config import get_settings


def create_access_token(
    user_id: UUID,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token for a user.

    Args:
        user_id: User's UUID
        email: Optional email claim
        expires_minutes: Lifetime override (default JWT_EXPIRY_MINUTES)

    Returns:
        str: Signed JWT token
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRY_MINUTES

    payload = {
        'sub': str(user_id),
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(minutes=lifetime)).timestamp()),
    }
    if email:
        payload['email'] = email

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()

    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
