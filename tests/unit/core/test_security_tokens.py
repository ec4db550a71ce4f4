"""Tests for bearer token handling."""

from datetime import timedelta
from uuid import uuid4

from jose import jwt

from infoline.core.config import get_settings
from infoline.core.security import create_access_token, decode_token


class TestTokens:

    def test_round_trip(self):
        user_id = uuid4()
        assert decode_token(create_access_token(user_id)) == user_id

    def test_expired_token(self):
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-10))
        assert decode_token(token) is None

    def test_wrong_signature(self):
        token = jwt.encode({"sub": str(uuid4())}, "another-secret", algorithm="HS256")
        assert decode_token(token) is None

    def test_missing_subject(self):
        settings = get_settings()
        token = jwt.encode({"type": "access"}, settings.secret_key, algorithm=settings.algorithm)
        assert decode_token(token) is None

    def test_subject_not_a_uuid(self):
        settings = get_settings()
        token = jwt.encode({"sub": "admin"}, settings.secret_key, algorithm=settings.algorithm)
        assert decode_token(token) is None

    def test_garbage(self):
        assert decode_token("not-a-token") is None
