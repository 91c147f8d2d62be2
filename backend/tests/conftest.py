import os

# Cheap bcrypt and quiet logs for the test run; must be set before app imports
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import secrets

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_notifier, get_token_service
from app.core.security import SessionTokenService
from app.db.base import Base
from app.db.session import build_engine, get_db
from app.main import app
from app.models import User
from app.services import identity
from app.services.notifications import Notifier

PASSWORD = "correct-horse-battery"


class RecordingNotifier(Notifier):
    """Keeps the last token sent to each address."""

    def __init__(self):
        self.verifications = {}
        self.resets = {}

    def send_verification(self, email, token):
        self.verifications[email] = token

    def send_password_reset(self, email, token):
        self.resets[email] = token


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def tokens():
    # A distinct signing key per test
    return SessionTokenService(secret_key=secrets.token_hex(32))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_user(db):
    def _make(email, role="student", college_name="College", verified=True, full_name="Test User"):
        result = identity.register(db, full_name, email, PASSWORD, role, college_name)
        user = db.get(User, result.identity.id)
        if verified:
            user.is_verified = True
            db.commit()
        return user

    return _make


@pytest.fixture
def client(session_factory, tokens, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: tokens
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()
