"""
API Dependencies.

Common dependencies for API endpoints: the session token service, the
notifier and the authenticated user.
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.security import SessionTokenService
from app.db.session import get_db
from app.models import User
from app.services import access_control
from app.services.notifications import LogNotifier, Notifier

# OAuth2 scheme for token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@lru_cache
def get_token_service() -> SessionTokenService:
    return SessionTokenService.from_settings()


@lru_cache
def get_notifier() -> Notifier:
    return LogNotifier()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    tokens: SessionTokenService = Depends(get_token_service),
) -> User:
    """
    Dependency to get the current verified user from the bearer token.

    Raises UnauthorizedError for bad tokens and ForbiddenError for
    accounts still waiting for approval.
    """
    return access_control.require_authenticated(db, tokens, token)


def get_current_tenant_admin(current_user: User = Depends(get_current_user)) -> User:
    access_control.require_tenant_admin(current_user)
    return current_user
