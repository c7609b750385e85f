"""Development mailer that records reset requests in the log only."""

import logging

from gatekeeper.adapters.mail.base import PasswordResetMailer
from gatekeeper.core.logging_safety import safe_log_login

logger = logging.getLogger(__name__)


class LogPasswordResetMailer(PasswordResetMailer):
    """Used when no SMTP host is configured. The token itself is never logged."""

    async def send_password_reset(self, *, recipient: str, token: str) -> None:
        logger.info("mail.reset_logged recipient=%s delivery=disabled", safe_log_login(recipient))


__all__ = ["LogPasswordResetMailer"]
