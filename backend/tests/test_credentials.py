from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.clock import utcnow
from app.core.exceptions import (
    ForbiddenError,
    InvalidTokenError,
    NotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from app.core.security import hash_token
from app.models import UserCredential
from app.services import credentials
from conftest import PASSWORD


def test_login_unverified_is_forbidden_until_approved(db, tokens, make_user):
    user = make_user("alice@college.edu", verified=False)

    with pytest.raises(ForbiddenError):
        credentials.login(db, tokens, "alice@college.edu", PASSWORD)

    user.is_verified = True
    db.commit()

    result = credentials.login(db, tokens, "alice@college.edu", PASSWORD)
    assert tokens.verify(result.session_token) == user.id
    assert result.identity.last_login is not None


def test_login_failures_are_indistinguishable(db, tokens, make_user):
    make_user("alice@college.edu")

    with pytest.raises(UnauthorizedError) as wrong_password:
        credentials.login(db, tokens, "alice@college.edu", "wrong-password")
    with pytest.raises(UnauthorizedError) as unknown_email:
        credentials.login(db, tokens, "nobody@college.edu", PASSWORD)

    assert wrong_password.value.message == unknown_email.value.message == "Invalid credentials"


def test_unverified_with_wrong_password_gets_invalid_credentials(db, tokens, make_user):
    make_user("alice@college.edu", verified=False)

    with pytest.raises(UnauthorizedError):
        credentials.login(db, tokens, "alice@college.edu", "wrong-password")


def test_get_current_identity(db, tokens, make_user):
    user = make_user("alice@college.edu")

    profile = credentials.get_current_identity(db, tokens, tokens.issue(user.id))

    assert profile.id == user.id


def test_begin_password_reset_stores_only_a_digest(db, make_user):
    user = make_user("alice@college.edu")

    token = credentials.begin_password_reset(db, "Alice@college.edu")

    credential = db.get(UserCredential, user.id)
    assert credential.reset_token_hash == hash_token(token)
    assert credential.reset_token_hash != token
    expected_expiry = utcnow() + timedelta(minutes=30)
    assert abs((credential.reset_token_expires_at - expected_expiry).total_seconds()) < 60


def test_begin_password_reset_unknown_email(db):
    with pytest.raises(NotFoundError):
        credentials.begin_password_reset(db, "nobody@college.edu")


def test_complete_password_reset_changes_password_once(db, tokens, make_user):
    user = make_user("alice@college.edu")
    token = credentials.begin_password_reset(db, "alice@college.edu")

    credentials.complete_password_reset(db, token, "a-brand-new-password")

    credential = db.get(UserCredential, user.id)
    assert credential.reset_token_hash is None
    assert credential.reset_token_expires_at is None

    with pytest.raises(UnauthorizedError):
        credentials.login(db, tokens, "alice@college.edu", PASSWORD)
    assert credentials.login(db, tokens, "alice@college.edu", "a-brand-new-password").session_token

    with pytest.raises(InvalidTokenError):
        credentials.complete_password_reset(db, token, "yet-another-password")
    assert credentials.login(db, tokens, "alice@college.edu", "a-brand-new-password").session_token


def test_complete_password_reset_rejects_expired_token(db, tokens, make_user):
    user = make_user("alice@college.edu")
    token = credentials.begin_password_reset(db, "alice@college.edu")
    credential = db.get(UserCredential, user.id)
    credential.reset_token_expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    with pytest.raises(InvalidTokenError):
        credentials.complete_password_reset(db, token, "a-brand-new-password")

    assert credentials.login(db, tokens, "alice@college.edu", PASSWORD).session_token


def test_new_reset_request_replaces_previous_token(db, make_user):
    make_user("alice@college.edu")
    old_token = credentials.begin_password_reset(db, "alice@college.edu")
    new_token = credentials.begin_password_reset(db, "alice@college.edu")

    with pytest.raises(InvalidTokenError):
        credentials.complete_password_reset(db, old_token, "a-brand-new-password")
    credentials.complete_password_reset(db, new_token, "a-brand-new-password")


def test_complete_password_reset_validates_new_password(db, make_user):
    make_user("alice@college.edu")
    token = credentials.begin_password_reset(db, "alice@college.edu")

    with pytest.raises(ValidationError):
        credentials.complete_password_reset(db, token, "short")

    # the token survives a rejected attempt
    credentials.complete_password_reset(db, token, "a-brand-new-password")


def test_reset_token_cannot_be_consumed_by_two_sessions(session_factory, make_user):
    make_user("alice@college.edu")
    first, second = session_factory(), session_factory()
    try:
        token = credentials.begin_password_reset(first, "alice@college.edu")

        credentials.complete_password_reset(first, token, "first-new-password")
        with pytest.raises(InvalidTokenError):
            credentials.complete_password_reset(second, token, "second-new-password")
    finally:
        first.close()
        second.close()


def test_dead_reset_token_is_reported_before_password_rules(db, make_user):
    make_user("alice@college.edu")
    token = credentials.begin_password_reset(db, "alice@college.edu")
    credentials.complete_password_reset(db, token, "a-brand-new-password")

    with pytest.raises(InvalidTokenError):
        credentials.complete_password_reset(db, token, "short")
    with pytest.raises(InvalidTokenError):
        credentials.complete_password_reset(db, "0" * 64, "short")


def test_login_storage_failure_is_retryable(db, tokens, make_user, monkeypatch):
    make_user("alice@college.edu")

    def timeout(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db, "execute", timeout)

    with pytest.raises(StorageUnavailableError):
        credentials.login(db, tokens, "alice@college.edu", PASSWORD)
    with pytest.raises(StorageUnavailableError):
        credentials.begin_password_reset(db, "alice@college.edu")
