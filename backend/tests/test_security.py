from datetime import datetime, timedelta, timezone

import jwt
from jwt.utils import base64url_encode
import pytest

from app.core.config import Settings
from app.core.exceptions import ExpiredTokenError, InvalidTokenError, ValidationError
from app.core.security import (
    SessionTokenService,
    generate_opaque_token,
    get_password_hash,
    hash_token,
    validate_password,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = get_password_hash("s3cret-password")

    assert hashed != "s3cret-password"
    assert hashed.startswith("$2")
    assert verify_password("s3cret-password", hashed)


@pytest.mark.parametrize("attempt", ["s3cret-passwore", "S3cret-password", "", "s3cret-password "])
def test_password_hash_rejects_other_plaintexts(attempt):
    hashed = get_password_hash("s3cret-password")

    assert not verify_password(attempt, hashed)


def test_password_hashes_are_salted():
    assert get_password_hash("same-password") != get_password_hash("same-password")


def test_default_bcrypt_cost_is_twelve():
    assert Settings.model_fields["BCRYPT_ROUNDS"].default == 12


def test_validate_password_bounds():
    validate_password("12345678")

    with pytest.raises(ValidationError):
        validate_password("short")
    with pytest.raises(ValidationError):
        validate_password("x" * 73)


def test_opaque_tokens_are_random_and_stored_hashed():
    token = generate_opaque_token()

    assert len(token) == 64  # 32 bytes of entropy, hex encoded
    assert token != generate_opaque_token()
    assert hash_token(token) == hash_token(token)
    assert hash_token(token) != token


def test_session_token_round_trip():
    tokens = SessionTokenService(secret_key="k" * 32)

    assert tokens.verify(tokens.issue(42)) == 42


def test_session_token_default_validity_is_seven_days():
    tokens = SessionTokenService(secret_key="k" * 32)

    payload = jwt.decode(tokens.issue(1), "k" * 32, algorithms=["HS256"])
    assert payload["exp"] - payload["iat"] == int(timedelta(days=7).total_seconds())
    assert payload["sub"] == "1"


def test_session_token_signed_with_other_key_is_invalid():
    issued = SessionTokenService(secret_key="a" * 32).issue(1)

    with pytest.raises(InvalidTokenError):
        SessionTokenService(secret_key="b" * 32).verify(issued)


def test_expired_session_token():
    tokens = SessionTokenService(secret_key="k" * 32)
    issued = tokens.issue(1, expires_delta=timedelta(seconds=-5))

    with pytest.raises(ExpiredTokenError):
        tokens.verify(issued)


def test_tampered_session_token_is_invalid():
    tokens = SessionTokenService(secret_key="k" * 32)
    header, payload, signature = tokens.issue(1).split(".")
    forged_payload = base64url_encode(b'{"sub":"2","exp":9999999999,"type":"session"}').decode()

    with pytest.raises(InvalidTokenError):
        tokens.verify(f"{header}.{forged_payload}.{signature}")


def test_token_without_session_type_is_rejected():
    expire = datetime.now(timezone.utc) + timedelta(minutes=5)
    other = jwt.encode({"sub": "1", "exp": expire, "type": "refresh"}, "k" * 32, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        SessionTokenService(secret_key="k" * 32).verify(other)


def test_garbage_token_is_invalid():
    with pytest.raises(InvalidTokenError):
        SessionTokenService(secret_key="k" * 32).verify("not-a-token")


def test_signing_key_is_required():
    with pytest.raises(ValueError):
        SessionTokenService(secret_key="")
