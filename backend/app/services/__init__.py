from app.services import (
    access_control,
    credentials,
    identity,
    notifications,
    referrals,
    tenant_registry,
)
from app.services.credentials import LoginResult
from app.services.identity import RegistrationResult
from app.services.notifications import LogNotifier, Notifier

__all__ = [
    "access_control",
    "credentials",
    "identity",
    "notifications",
    "referrals",
    "tenant_registry",
    "LoginResult",
    "RegistrationResult",
    "LogNotifier",
    "Notifier",
]
