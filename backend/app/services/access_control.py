"""
Access control guard.

Pure authorization decisions: each check either returns or raises, and none
of them writes anything.
"""

from typing import Iterable, Union

from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, InvalidTokenError, UnauthorizedError
from app.core.security import SessionTokenService
from app.db.session import storage_guard
from app.models import Role, User


def require_authenticated(db: Session, tokens: SessionTokenService, token: str) -> User:
    """
    Resolve a session token to a verified identity.

    Raises:
        UnauthorizedError: Token missing, invalid or expired, or the user is gone
        ForbiddenError: The account has not been verified yet
    """
    if not token:
        raise UnauthorizedError("Not authorized. Please login.")

    try:
        user_id = tokens.verify(token)
    except InvalidTokenError as e:
        raise UnauthorizedError("Not authorized. Token is invalid or expired.") from e

    with storage_guard(db):
        user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")

    if not user.is_verified:
        raise ForbiddenError("Account not verified. Please wait for admin approval.")

    return user


def require_role(identity: User, allowed_roles: Iterable[Union[Role, str]]) -> None:
    allowed = {Role(role).value for role in allowed_roles}
    if identity.role not in allowed:
        raise ForbiddenError(f"Role '{identity.role}' is not authorized to access this route")


def require_same_tenant(identity: User, college_id: int) -> None:
    if identity.college_id != college_id:
        raise ForbiddenError("Access denied. You can only access resources from your own college.")


def is_tenant_admin(identity: User) -> bool:
    if identity.role == Role.ADMIN.value:
        return True
    return any(admin.id == identity.id for admin in identity.college.admins)


def require_tenant_admin(identity: User) -> bool:
    if not is_tenant_admin(identity):
        raise ForbiddenError("Access denied. College admin privileges required.")
    return True
