from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ForbiddenError, StorageUnavailableError, UnauthorizedError
from app.core.security import SessionTokenService
from app.models import Role
from app.services import access_control, tenant_registry


def test_require_authenticated_returns_identity(db, tokens, make_user):
    user = make_user("alice@college.edu")

    assert access_control.require_authenticated(db, tokens, tokens.issue(user.id)).id == user.id


@pytest.mark.parametrize("token", ["", None, "garbage"])
def test_require_authenticated_rejects_bad_tokens(db, tokens, token):
    with pytest.raises(UnauthorizedError):
        access_control.require_authenticated(db, tokens, token)


def test_require_authenticated_rejects_expired_and_foreign_tokens(db, tokens, make_user):
    user = make_user("alice@college.edu")
    expired = tokens.issue(user.id, expires_delta=timedelta(seconds=-1))
    foreign = SessionTokenService(secret_key="someone-elses-key").issue(user.id)

    with pytest.raises(UnauthorizedError):
        access_control.require_authenticated(db, tokens, expired)
    with pytest.raises(UnauthorizedError):
        access_control.require_authenticated(db, tokens, foreign)


def test_require_authenticated_rejects_missing_user(db, tokens):
    with pytest.raises(UnauthorizedError):
        access_control.require_authenticated(db, tokens, tokens.issue(12345))


def test_require_authenticated_rejects_unverified(db, tokens, make_user):
    user = make_user("alice@college.edu", verified=False)

    with pytest.raises(ForbiddenError):
        access_control.require_authenticated(db, tokens, tokens.issue(user.id))


def test_require_role(make_user):
    student = make_user("alice@college.edu", role="student")

    access_control.require_role(student, [Role.STUDENT, Role.ALUMNI])
    access_control.require_role(student, ["student"])
    with pytest.raises(ForbiddenError):
        access_control.require_role(student, [Role.ALUMNI])


def test_require_same_tenant(make_user):
    alice = make_user("alice@college.edu")
    other = make_user("carol@other.edu", college_name="Other")

    access_control.require_same_tenant(alice, alice.college_id)
    with pytest.raises(ForbiddenError):
        access_control.require_same_tenant(alice, other.college_id)


def test_require_tenant_admin(db, make_user):
    admin = make_user("admin@college.edu", role="admin")
    faculty = make_user("faculty@college.edu", role="faculty")

    assert access_control.require_tenant_admin(admin) is True
    with pytest.raises(ForbiddenError):
        access_control.require_tenant_admin(faculty)

    tenant_registry.add_admin(db, faculty.college, faculty)
    assert access_control.require_tenant_admin(faculty) is True


def test_guards_do_not_mutate(db, tokens, make_user):
    user = make_user("alice@college.edu")
    token = tokens.issue(user.id)

    for _ in range(3):
        access_control.require_authenticated(db, tokens, token)
        access_control.require_role(user, [Role.STUDENT])
        access_control.require_same_tenant(user, user.college_id)

    assert not db.dirty
    assert not db.new


def test_require_authenticated_storage_failure_is_retryable(db, tokens, make_user, monkeypatch):
    user = make_user("alice@college.edu")
    token = tokens.issue(user.id)

    def timeout(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db, "get", timeout)

    with pytest.raises(StorageUnavailableError):
        access_control.require_authenticated(db, tokens, token)
