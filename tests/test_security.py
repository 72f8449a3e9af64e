import time

import pytest

from apps.api.core.security import InvalidTokenError, TokenSigner, hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("s3cret-pass")
    assert hashed.startswith("bcrypt_sha256$")
    assert "s3cret-pass" not in hashed
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong-pass", hashed)


def test_password_hash_is_salted():
    assert hash_password("same-password") != hash_password("same-password")


def test_long_passwords_are_not_truncated():
    base = "x" * 80
    hashed = hash_password(base + "a")
    assert not verify_password(base + "b", hashed)


def test_verify_rejects_unknown_hash_format():
    assert not verify_password("anything", "plain-text")


def test_token_carries_user_id():
    signer = TokenSigner("secret", 60)
    token = signer.issue("user-42")
    assert signer.verify(token) == "user-42"


def test_token_signed_with_other_key_is_rejected():
    token = TokenSigner("secret-a", 60).issue("user-42")
    with pytest.raises(InvalidTokenError):
        TokenSigner("secret-b", 60).verify(token)


def test_tampered_token_is_rejected():
    signer = TokenSigner("secret", 60)
    token = signer.issue("user-42")
    with pytest.raises(InvalidTokenError):
        signer.verify(token[:-2] + ("AA" if token[-2:] != "AA" else "BB"))


def test_expired_token_is_rejected():
    signer = TokenSigner("secret", 1)
    token = signer.issue("user-42")
    time.sleep(2.1)
    with pytest.raises(InvalidTokenError):
        signer.verify(token)


def test_garbage_token_is_rejected():
    with pytest.raises(InvalidTokenError):
        TokenSigner("secret", 60).verify("not-a-token")
