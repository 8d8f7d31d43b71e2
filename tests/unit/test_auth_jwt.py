"""Unit tests for JWT helpers and the current-user dependency"""

from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from debitflow.auth.dependencies import get_current_user
from debitflow.auth.jwt import create_access_token, decode_token
from debitflow.config import get_settings


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:

    def test_round_trip_claims(self):
        user_id = uuid4()
        claims = decode_token(create_access_token(user_id, email="atelier@example.com"))

        assert claims["sub"] == str(user_id)
        assert claims["email"] == "atelier@example.com"
        assert claims["exp"] > claims["iat"]

    def test_expired_token(self):
        token = create_access_token(uuid4(), expires_minutes=-1)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid4())}, "another-secret-that-is-long-enough-for-hs256", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)


class TestGetCurrentUser:

    def test_valid_token(self):
        user_id = uuid4()
        user = get_current_user(_bearer(create_access_token(user_id)))
        assert user.id == user_id

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(None)
        assert exc_info.value.status_code == 401

    def test_expired(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_bearer(create_access_token(uuid4(), expires_minutes=-1)))
        assert exc_info.value.status_code == 401

    def test_subject_not_a_uuid(self):
        settings = get_settings()
        token = jwt.encode({"sub": "not-a-uuid"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_bearer(token))
        assert exc_info.value.status_code == 401

    def test_missing_subject(self):
        settings = get_settings()
        token = jwt.encode({"email": "x@example.com"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        with pytest.raises(HTTPException):
            get_current_user(_bearer(token))
