"""Google OAuth2 authorization-code strategy."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from gatekeeper.adapters.oauth.base import OAuthError, OAuthProvider, OAuthUserInfo

logger = logging.getLogger(__name__)


class GoogleOAuthProvider(OAuthProvider):
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v1/userinfo"

    name = "google"

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        redirect_url: str | None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_url = redirect_url
        self._transport = transport
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret and self._redirect_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def get_token(self, code: str) -> str:
        if not self.is_configured:
            raise OAuthError("Google OAuth is not configured")

        async with self._client() as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "grant_type": "authorization_code",
                        "redirect_uri": self._redirect_url,
                        "code": code,
                    },
                )
            except httpx.HTTPError as exc:
                raise OAuthError("Google token exchange failed") from exc

        if response.status_code != 200:
            logger.warning("oauth.token_exchange_failed provider=google status=%s", response.status_code)
            raise OAuthError(f"Google token exchange failed: {response.status_code}")

        access_token = _json_object(response, "token").get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise OAuthError("Google token response has no access token")
        return access_token

    async def get_user_info(self, access_token: str) -> OAuthUserInfo:
        async with self._client() as client:
            try:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as exc:
                raise OAuthError("Google userinfo request failed") from exc

        if response.status_code != 200:
            logger.warning("oauth.userinfo_failed provider=google status=%s", response.status_code)
            raise OAuthError(f"Google userinfo request failed: {response.status_code}")

        data = _json_object(response, "userinfo")
        external_id = str(data.get("id") or "").strip()
        if not external_id:
            raise OAuthError("Google userinfo has no user id")
        try:
            return OAuthUserInfo(id=external_id, email=data.get("email"))
        except ValidationError as exc:
            raise OAuthError("Google userinfo is malformed") from exc


def _json_object(response: httpx.Response, stage: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        logger.warning("oauth.invalid_body provider=google stage=%s", stage)
        raise OAuthError(f"Google {stage} response is not JSON") from exc
    if not isinstance(data, dict):
        logger.warning("oauth.invalid_body provider=google stage=%s", stage)
        raise OAuthError(f"Google {stage} response is not a JSON object")
    return data


__all__ = ["GoogleOAuthProvider"]
