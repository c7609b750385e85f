"""Password reset delivery interfaces."""

from abc import ABC, abstractmethod
from urllib.parse import urlencode


class MailDeliveryError(Exception):
    """Raised when a reset message could not be handed to the mail transport."""


class PasswordResetMailer(ABC):
    def __init__(self, reset_link: str) -> None:
        self._reset_link = reset_link

    def build_reset_url(self, token: str) -> str:
        separator = "&" if "?" in self._reset_link else "?"
        return f"{self._reset_link}{separator}{urlencode({'token': token})}"

    @abstractmethod
    async def send_password_reset(self, *, recipient: str, token: str) -> None:
        """Deliver the reset link for ``token`` to ``recipient``."""


__all__ = ["MailDeliveryError", "PasswordResetMailer"]
