"""
Credential and session flows: login, current identity and password reset.

Hashing and token primitives live in app.core.security; this module wires
them to stored identities.
"""

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import ForbiddenError, InvalidTokenError, NotFoundError, UnauthorizedError
from app.core.logging import get_logger
from app.core.security import (
    DUMMY_PASSWORD_HASH,
    SessionTokenService,
    generate_opaque_token,
    get_password_hash,
    hash_token,
    validate_password,
    verify_password,
)
from app.db.session import storage_guard
from app.models import User, UserCredential
from app.schemas.user import PublicProfile
from app.services import access_control
from app.services.identity import find_by_email, public_profile

logger = get_logger("credentials")

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass
class LoginResult:
    identity: PublicProfile
    session_token: str


def authenticate_user(db: Session, email: str, password: str) -> User:
    """
    Check an email/password pair.

    Unknown emails and wrong passwords fail identically; a dummy hash is
    checked for unknown emails so both take the same time.
    """
    user = find_by_email(db, email)
    with storage_guard(db):
        credential = user.credential if user is not None else None

    if credential is None:
        verify_password(password or "", DUMMY_PASSWORD_HASH)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    if not verify_password(password or "", credential.password_hash):
        raise UnauthorizedError(INVALID_CREDENTIALS)

    return user


def login(db: Session, tokens: SessionTokenService, email: str, password: str) -> LoginResult:
    """Authenticate, stamp last_login and issue a session token."""
    user = authenticate_user(db, email, password)

    if not user.is_verified:
        logger.warning(f"Login refused for unverified user {user.id}")
        raise ForbiddenError("Account pending verification. Please wait for admin approval.")

    with storage_guard(db):
        user.last_login = utcnow()
        db.commit()
        db.refresh(user)

    logger.info(f"User {user.id} logged in")

    return LoginResult(identity=public_profile(user), session_token=tokens.issue(user.id))


def get_current_identity(db: Session, tokens: SessionTokenService, token: str) -> PublicProfile:
    return public_profile(access_control.require_authenticated(db, tokens, token))


def begin_password_reset(db: Session, email: str) -> str:
    """
    Store a fresh reset token digest for the account and return the plaintext.

    The plaintext goes to the notifier and nowhere else.
    """
    user = find_by_email(db, email)
    if user is None:
        raise NotFoundError("User not found")

    reset_token = generate_opaque_token()
    expires_at = utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)

    with storage_guard(db):
        db.execute(
            update(UserCredential)
            .where(UserCredential.user_id == user.id)
            .values(reset_token_hash=hash_token(reset_token), reset_token_expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    logger.info(f"Password reset requested for user {user.id}")
    return reset_token


def complete_password_reset(db: Session, token: str, new_password: str) -> None:
    """
    Replace the password using a reset token.

    The token is checked before the new password, so a dead token is always
    reported as such. The new hash and the clearing of the token still happen
    in one conditional UPDATE, so a token can be consumed at most once.
    """
    if not token:
        raise InvalidTokenError("Invalid or expired reset token")

    token_hash = hash_token(token)
    with storage_guard(db):
        live = db.execute(
            select(UserCredential.user_id).where(
                UserCredential.reset_token_hash == token_hash,
                UserCredential.reset_token_expires_at > utcnow(),
            )
        ).first()
    if live is None:
        logger.warning("Password reset refused: token unknown, used or expired")
        raise InvalidTokenError("Invalid or expired reset token")

    validate_password(new_password)
    password_hash = get_password_hash(new_password)

    with storage_guard(db):
        result = db.execute(
            update(UserCredential)
            .where(
                UserCredential.reset_token_hash == token_hash,
                UserCredential.reset_token_expires_at > utcnow(),
            )
            .values(
                password_hash=password_hash,
                reset_token_hash=None,
                reset_token_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Password reset refused: token unknown, used or expired")
            raise InvalidTokenError("Invalid or expired reset token")
        db.commit()

    logger.info("Password reset completed")
