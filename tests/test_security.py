# tests/test_security.py
from datetime import timedelta

import pytest
from jose import JWTError

from serialtrack.core.security import (
    TokenType,
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    get_password_hash,
    verify_password,
)


def test_token_types_are_enforced():
    access = create_access_token(7)
    refresh = create_refresh_token(7)

    assert decode_token(access, expected_type=TokenType.ACCESS)["sub"] == "7"
    assert decode_token(refresh, expected_type=TokenType.REFRESH)["type"] == "refresh"
    with pytest.raises(JWTError):
        decode_token(refresh, expected_type=TokenType.ACCESS)
    with pytest.raises(JWTError):
        decode_token(access, expected_type=TokenType.REFRESH)


def test_expired_token_is_rejected():
    token = create_access_token(7, expires_delta=timedelta(seconds=-5))
    with pytest.raises(JWTError):
        decode_token(token)


def test_token_pair():
    pair = create_token_pair(3)
    assert pair["token_type"] == "bearer"
    assert pair["expires_in"] > 0
    assert decode_token(pair["refresh_token"], expected_type=TokenType.REFRESH)["sub"] == "3"


def test_password_hashing():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", "not-a-bcrypt-hash")
    assert not verify_password("secret123", None)
