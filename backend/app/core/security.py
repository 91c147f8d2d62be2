"""
Security utilities for authentication and authorization.

Provides password hashing (bcrypt), JWT session tokens and the opaque
single-use tokens behind email verification and password reset.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import ExpiredTokenError, InvalidTokenError, ValidationError

# Password hashing context using bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

# bcrypt only looks at the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72

MIN_PASSWORD_LENGTH = 8

SESSION_TOKEN_TYPE = "session"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        The hashed password string
    """
    return pwd_context.hash(password)


def validate_password(password: str) -> None:
    """Reject passwords bcrypt cannot hash faithfully or that are too short."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password cannot exceed {MAX_PASSWORD_BYTES} bytes")


# Verified against when the email is unknown so login timing stays uniform
DUMMY_PASSWORD_HASH = get_password_hash(secrets.token_hex(16))


def generate_opaque_token() -> str:
    """Return 256 bits of randomness as a hex string."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """One-way hash under which opaque tokens are stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionTokenService:
    """
    Issues and verifies signed bearer tokens.

    The signing key is passed in at construction so that every caller (and
    every test) decides which key it trusts.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(days=7),
    ):
        if not secret_key:
            raise ValueError("A signing key is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    @classmethod
    def from_settings(cls) -> "SessionTokenService":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            expires_delta=timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS),
        )

    def issue(self, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a session token bound to a single user id.

        Args:
            user_id: The subject of the token
            expires_delta: Optional override of the configured validity

        Returns:
            The encoded JWT string
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.expires_delta)

        to_encode = {
            "sub": str(user_id),
            "iat": now,
            "exp": expire,
            "type": SESSION_TOKEN_TYPE,
        }

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """
        Decode a session token and return the user id it is bound to.

        Raises:
            ExpiredTokenError: The token is past its expiry
            InvalidTokenError: Bad signature, malformed token or wrong claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError("Session token has expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError("Session token is invalid")

        if payload.get("type") != SESSION_TOKEN_TYPE:
            raise InvalidTokenError("Session token is invalid")

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise InvalidTokenError("Session token is invalid")
