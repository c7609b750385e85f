"""Password reset mail adapters."""

from gatekeeper.core.config import Settings

from .base import MailDeliveryError, PasswordResetMailer
from .log_mailer import LogPasswordResetMailer
from .smtp import SmtpPasswordResetMailer


def create_password_reset_mailer(settings: Settings) -> PasswordResetMailer:
    if settings.smtp_host:
        return SmtpPasswordResetMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_sender,
            reset_link=settings.password_reset_link,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LogPasswordResetMailer(settings.password_reset_link)


__all__ = [
    "LogPasswordResetMailer",
    "MailDeliveryError",
    "PasswordResetMailer",
    "SmtpPasswordResetMailer",
    "create_password_reset_mailer",
]
