"""OAuth2 provider interfaces."""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class OAuthError(Exception):
    """Raised when a provider exchange fails; callers treat it as an authentication failure."""


class UnsupportedOAuthProvider(OAuthError):
    """Raised for provider names with no configured strategy."""


class OAuthUserInfo(BaseModel):
    id: str
    email: str | None = None


class OAuthProvider(ABC):
    """Authorization-code exchange against one identity provider."""

    name: str

    @abstractmethod
    async def get_token(self, code: str) -> str:
        """Exchange an authorization code for an access token."""

    @abstractmethod
    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        """Fetch the provider's identity for an access token."""

    async def exchange(self, code: str) -> OAuthUserInfo:
        access_token = await self.get_token(code)
        if not access_token:
            raise OAuthError("Provider returned no access token")
        return await self.get_user_info(access_token)


__all__ = ["OAuthError", "OAuthProvider", "OAuthUserInfo", "UnsupportedOAuthProvider"]
