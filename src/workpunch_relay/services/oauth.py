"""Salesforce OAuth 2.0 web-server flow.

Builds the authorization URL and exchanges authorization codes and refresh
tokens at the Salesforce token endpoint. Secret material is never logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from workpunch_relay.core.settings import settings
from workpunch_relay.services.errors import ExternalError, ExternalTransientError

logger = logging.getLogger(__name__)


class OAuthExchangeError(ExternalError):
    """The token endpoint refused the exchange or answered without tokens."""

    kind = "OAuthExchangeFailed"
    status_code = 502


@dataclass(frozen=True)
class OAuthTokens:
    """Tokens returned by the Salesforce token endpoint."""

    access_token: str
    refresh_token: str | None
    instance_url: str


@dataclass(frozen=True)
class OAuthClientConfig:
    """Immutable configuration for the connected app."""

    client_id: str
    client_secret: str
    redirect_uri: str
    authorize_url: str
    token_url: str
    scopes: str
    timeout_seconds: float


def load_oauth_config() -> OAuthClientConfig:
    """Build configuration object from global settings."""
    return OAuthClientConfig(
        client_id=settings.salesforce_client_id,
        client_secret=settings.salesforce_client_secret,
        redirect_uri=settings.salesforce_redirect_uri,
        authorize_url=settings.salesforce_authorize_url,
        token_url=settings.salesforce_token_url,
        scopes=settings.salesforce_oauth_scopes,
        timeout_seconds=float(settings.salesforce_http_timeout_seconds),
    )


class SalesforceOAuthClient:
    """Client for the Salesforce authorization and token endpoints."""

    def __init__(
        self,
        config: OAuthClientConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or load_oauth_config()
        self._client = client

    def authorization_url(self, state: str) -> str:
        """Return the URL the user's browser should visit to grant access."""
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "scope": self.config.scopes,
            "state": state,
        }
        return f"{self.config.authorize_url}?{urlencode(params)}"

    async def _post_token(self, form: dict[str, str], grant: str) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(self.config.token_url, data=form)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds)
                ) as client:
                    response = await client.post(self.config.token_url, data=form)
        except httpx.HTTPError as exc:
            logger.warning("Salesforce token endpoint unreachable (%s): %s", grant, exc)
            raise ExternalTransientError(f"Salesforce token endpoint unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success:
            error_code = body.get("error") if isinstance(body, dict) else None
            logger.warning(
                "Salesforce %s grant failed (%s, error=%s)", grant, response.status_code, error_code
            )
            raise OAuthExchangeError(
                f"Salesforce rejected the {grant} grant ({response.status_code})",
                status=response.status_code,
                error_code=error_code,
            )
        return body

    async def exchange_authorization_code(self, code: str) -> OAuthTokens:
        """Exchange an authorization code for access and refresh tokens."""
        body = await self._post_token(
            {
                "grant_type": "authorization_code",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": self.config.redirect_uri,
                "code": code,
            },
            "authorization_code",
        )

        access_token = body.get("access_token")
        refresh_token = body.get("refresh_token")
        instance_url = body.get("instance_url")
        if not access_token or not refresh_token or not instance_url:
            missing = [
                key
                for key in ("access_token", "refresh_token", "instance_url")
                if not body.get(key)
            ]
            raise OAuthExchangeError(f"Salesforce token response missing {', '.join(missing)}")

        return OAuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            instance_url=instance_url,
        )

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """Obtain a new access token; the refresh token itself is kept."""
        body = await self._post_token(
            {
                "grant_type": "refresh_token",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "refresh_token": refresh_token,
            },
            "refresh_token",
        )

        access_token = body.get("access_token")
        instance_url = body.get("instance_url")
        if not access_token or not instance_url:
            raise OAuthExchangeError("Salesforce refresh response missing access_token")

        return OAuthTokens(
            access_token=access_token,
            refresh_token=body.get("refresh_token") or refresh_token,
            instance_url=instance_url,
        )


def get_oauth_client() -> SalesforceOAuthClient:
    """Return an OAuth client configured from settings."""
    return SalesforceOAuthClient()
