import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError, jwt

from app.core.auth.security import create_access_token, decode_access_token
from app.settings import get_settings


def test_access_token_roundtrip():
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "callOperator")
    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "callOperator"
    assert payload["type"] == "access"


def test_refresh_style_token_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_expired_token_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(JWTError):
        decode_access_token(token)


def test_foreign_signature_rejected():
    token = jwt.encode({"sub": str(uuid.uuid4()), "type": "access"}, "not-our-secret", algorithm="HS256")
    with pytest.raises(JWTError):
        decode_access_token(token)
