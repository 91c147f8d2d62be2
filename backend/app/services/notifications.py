"""
Outbound notices for account verification and password reset.

Delivery itself belongs to an email collaborator. The default notifier only
records that a notice was due; it never writes the token anywhere.
"""

from app.core.logging import get_logger

logger = get_logger("notifications")


class Notifier:
    """Interface for delivering single-use tokens out of band."""

    def send_verification(self, email: str, token: str) -> None:
        raise NotImplementedError

    def send_password_reset(self, email: str, token: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    def send_verification(self, email: str, token: str) -> None:
        logger.info(f"Verification email queued for {email}")

    def send_password_reset(self, email: str, token: str) -> None:
        logger.info(f"Password reset email queued for {email}")
