"""
Identity store.

Registration, lookups, the public projection of users, email confirmation,
admin approval and owner profile updates.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import (
    DuplicateError,
    ExpiredTokenError,
    ForbiddenError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from app.core.locks import KeyedLock
from app.core.logging import get_logger
from app.core.security import (
    generate_opaque_token,
    get_password_hash,
    hash_token,
    validate_password,
)
from app.db.session import storage_guard
from app.models import Role, User, UserCredential
from app.schemas.user import PublicProfile
from app.services import access_control, tenant_registry

logger = get_logger("identity")

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)+$")
MIN_NAME_LENGTH = 3
MAX_BIO_LENGTH = 500

PROFILE_FIELDS = {
    "full_name",
    "profile_picture",
    "bio",
    "degree",
    "major",
    "graduation_year",
    "current_company",
    "current_position",
    "skills",
    "phone",
    "linkedin_url",
    "github_url",
    "portfolio_url",
    "is_mentor",
    "mentorship_topics",
}

# Registrations for the same email domain run one at a time
_domain_locks = KeyedLock()


@dataclass
class RegistrationResult:
    identity: PublicProfile
    requires_approval: bool
    # Plaintext, handed to the notifier only
    verification_token: str


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    email = normalize_email(email)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def validate_full_name(full_name: str) -> str:
    full_name = (full_name or "").strip()
    if len(full_name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name must be at least {MIN_NAME_LENGTH} characters")
    return full_name


def validate_role(role: str) -> str:
    try:
        return Role((role or "").strip().lower()).value
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Role must be one of: {allowed}")


def find_by_email(db: Session, email: str) -> Optional[User]:
    with storage_guard(db):
        return db.execute(
            select(User).where(User.email == normalize_email(email))
        ).scalar_one_or_none()


def find_by_id(db: Session, user_id: int) -> Optional[User]:
    with storage_guard(db):
        return db.get(User, user_id)


def public_profile(user: User) -> PublicProfile:
    return PublicProfile.model_validate(user)


def register(
    db: Session,
    full_name: str,
    email: str,
    password: str,
    role: str,
    college_name: str,
) -> RegistrationResult:
    """
    Create an unverified account, creating its college on first sight.

    The user row, its credentials and the college counter bump are committed
    together. Hashing happens before the domain lock is taken.
    """
    if not all([full_name, email, password, role, college_name]):
        raise ValidationError("Please provide all required fields")

    full_name = validate_full_name(full_name)
    email = validate_email(email)
    role = validate_role(role)
    validate_password(password)
    domain = tenant_registry.extract_domain(email)

    password_hash = get_password_hash(password)
    verification_token = generate_opaque_token()

    with _domain_locks.hold(domain), storage_guard(db):
        if find_by_email(db, email) is not None:
            raise DuplicateError("User with this email already exists")

        college = tenant_registry.resolve_or_create(db, email, college_name)

        if not tenant_registry.domain_matches(college, email):
            logger.warning(f"Registration refused: domain {domain} does not match college {college.id}")
            raise ValidationError("Email domain does not match college")

        if not college.is_active:
            raise ForbiddenError("College is not accepting registrations")

        user = User(
            full_name=full_name,
            email=email,
            role=role,
            college_id=college.id,
            is_verified=False,  # Requires admin approval
        )
        user.credential = UserCredential(
            password_hash=password_hash,
            verification_token_hash=hash_token(verification_token),
            verification_token_expires_at=utcnow()
            + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
        )
        db.add(user)

        tenant_registry.increment_role_counter(db, college, role)

        try:
            db.commit()
        except IntegrityError as e:
            raise DuplicateError("User with this email already exists") from e

        db.refresh(user)
        requires_approval = college.require_admin_approval
        identity = public_profile(user)

    logger.info(f"Registered user {user.id} ({role}) in college {college.id}")

    return RegistrationResult(
        identity=identity,
        requires_approval=requires_approval,
        verification_token=verification_token,
    )


def confirm_email(db: Session, token: str) -> PublicProfile:
    """
    Consume an email verification token.

    Colleges that do not require admin approval verify the account here;
    the rest only record that the address was confirmed.
    """
    token_hash = hash_token(token or "")
    now = utcnow()

    with storage_guard(db):
        credential = db.execute(
            select(UserCredential).where(UserCredential.verification_token_hash == token_hash)
        ).scalar_one_or_none()

        if credential is None:
            raise InvalidTokenError("Invalid verification token")

        if credential.verification_token_expires_at is None or credential.verification_token_expires_at <= now:
            raise ExpiredTokenError("Verification token has expired")

        result = db.execute(
            update(UserCredential)
            .where(
                UserCredential.user_id == credential.user_id,
                UserCredential.verification_token_hash == token_hash,
            )
            .values(verification_token_hash=None, verification_token_expires_at=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTokenError("Invalid verification token")

        user = credential.user
        user.email_verified_at = now
        if not user.college.require_admin_approval:
            user.is_verified = True

        db.commit()
        db.refresh(user)

    logger.info(f"Email confirmed for user {user.id}")
    return public_profile(user)


def approve(db: Session, admin: User, user_id: int) -> PublicProfile:
    """Mark an account in the admin's college as verified."""
    access_control.require_tenant_admin(admin)

    user = find_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    access_control.require_same_tenant(admin, user.college_id)

    if not user.is_verified:
        with storage_guard(db):
            user.is_verified = True
            db.commit()
            db.refresh(user)
        logger.info(f"User {user.id} approved by admin {admin.id}")

    return public_profile(user)


def update_profile(db: Session, user: User, **fields: Any) -> PublicProfile:
    """Apply owner edits to profile fields."""
    unknown = set(fields) - PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    if "full_name" in fields:
        fields["full_name"] = validate_full_name(fields["full_name"])

    bio = fields.get("bio")
    if bio is not None and len(bio) > MAX_BIO_LENGTH:
        raise ValidationError(f"Bio cannot exceed {MAX_BIO_LENGTH} characters")

    for key in ("skills", "mentorship_topics"):
        if key in fields and fields[key] is None:
            fields[key] = []
    if "is_mentor" in fields:
        fields["is_mentor"] = bool(fields["is_mentor"])

    with storage_guard(db):
        for key, value in fields.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)

    return public_profile(user)
