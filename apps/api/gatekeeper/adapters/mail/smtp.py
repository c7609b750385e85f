"""SMTP delivery of password reset links."""

from __future__ import annotations

from email.message import EmailMessage
import html
import logging
import smtplib

from starlette.concurrency import run_in_threadpool

from gatekeeper.adapters.mail.base import MailDeliveryError, PasswordResetMailer
from gatekeeper.core.logging_safety import safe_log_login

logger = logging.getLogger(__name__)

_SUBJECT = "Password recovery"
_TEXT_BODY = """Hello,

You asked to reset your password. Open the link below to choose a new one:

{reset_url}

If you did not ask for this change, ignore this e-mail.
"""
_HTML_BODY = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px;">
  <h2 style="text-align: center;">Password recovery</h2>
  <p>You asked to reset your password. Use the button below to choose a new one:</p>
  <p style="text-align: center; margin: 20px 0;">
    <a href="{reset_url}" style="background-color: #4A90E2; color: #ffffff; padding: 12px 24px; text-decoration: none; border-radius: 5px;">Reset password</a>
  </p>
  <p style="font-size: 14px; color: #666;">If you did not ask for this change, ignore this e-mail.</p>
</div>
"""


class SmtpPasswordResetMailer(PasswordResetMailer):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        reset_link: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        super().__init__(reset_link)
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def build_message(self, *, recipient: str, token: str) -> EmailMessage:
        reset_url = self.build_reset_url(token)
        message = EmailMessage()
        message["Subject"] = _SUBJECT
        message["From"] = self._sender
        message["To"] = recipient
        message.set_content(_TEXT_BODY.format(reset_url=reset_url))
        message.add_alternative(_HTML_BODY.format(reset_url=html.escape(reset_url, quote=True)), subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls:
                server.starttls()
            if self._username and self._password:
                server.login(self._username, self._password)
            server.send_message(message)

    async def send_password_reset(self, *, recipient: str, token: str) -> None:
        message = self.build_message(recipient=recipient, token=token)
        try:
            await run_in_threadpool(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "mail.reset_failed recipient=%s host=%s error=%s",
                safe_log_login(recipient),
                self._host,
                type(exc).__name__,
            )
            raise MailDeliveryError("Error sending email") from exc

        logger.info("mail.reset_sent recipient=%s", safe_log_login(recipient))


__all__ = ["SmtpPasswordResetMailer"]
