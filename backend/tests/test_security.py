from datetime import timedelta

import pytest

from warehouse.core.security import (
    create_access_token,
    hash_password,
    verify_access_token,
    verify_password,
)


def test_hash_password():
    password = "test123"
    hashed = hash_password(password)
    assert hashed != password
    assert verify_password(password, hashed)


def test_verify_wrong_password():
    password = "test123"
    hashed = hash_password(password)
    assert not verify_password("wrong", hashed)


def test_token_round_trip_keeps_subject():
    token = create_access_token({"sub": "42"})
    payload = verify_access_token(token)
    assert payload["sub"] == "42"
    assert "exp" in payload


def test_expired_token_rejected():
    token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-5))
    with pytest.raises(ValueError):
        verify_access_token(token)


def test_tampered_token_rejected():
    token = create_access_token({"sub": "42"})
    with pytest.raises(ValueError):
        verify_access_token(token[:-2] + "xx")
