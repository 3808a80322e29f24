"""
HubSpotConnector — OAuth2 web flow for HubSpot.

Installs are portal-scoped: the token introspection endpoint tells us which
portal (``hub_id``) granted access.
"""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import quote, urlencode

import httpx

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.errors import CodeExchangeFailed, RefreshFailed, TenantResolutionFailed
from utils.schemas import TokenGrant

logger = logging.getLogger(__name__)

# HubSpot OAuth2 endpoints
_HS_AUTH_URL = "https://app.hubspot.com/oauth/authorize"
_HS_TOKEN_URL = "https://api.hubapi.com/oauth/v1/token"
_HS_TOKEN_INFO_URL = "https://api.hubapi.com/oauth/v1/access-tokens"

SCOPES = [
    "oauth",
    "crm.objects.companies.read",
    "crm.objects.contacts.read",
    "crm.objects.deals.read",
    "crm.schemas.companies.read",
    "crm.schemas.contacts.read",
    "crm.schemas.deals.read",
    "forms",
    "marketing-email",
    "automation.workflows.read",
]


class HubSpotConnector(BaseConnector):
    """OAuth2 connector for HubSpot."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self._settings = settings
        self._http = http

    @property
    def provider_name(self) -> str:
        return "hubspot"

    @property
    def scopes(self) -> List[str]:
        return list(SCOPES)

    def is_configured(self) -> bool:
        return self._settings.is_hubspot_configured()

    def get_auth_url(self) -> str:
        params = {
            "client_id": self._settings.hubspot_client_id,
            "redirect_uri": self._settings.redirect_uri,
            "scope": " ".join(self.scopes),
        }
        return f"{_HS_AUTH_URL}?{urlencode(params, quote_via=quote)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange auth code for tokens; the provider's body is surfaced on failure."""
        try:
            resp = await self._http.post(
                _HS_TOKEN_URL,
                data={
                    "grant_type": "authorization_code",
                    "client_id": self._settings.hubspot_client_id,
                    "client_secret": self._settings.hubspot_client_secret,
                    "redirect_uri": self._settings.redirect_uri,
                    "code": code,
                },
            )
        except httpx.HTTPError as exc:
            raise CodeExchangeFailed(f"Token endpoint unreachable: {exc}") from exc

        if resp.is_error:
            logger.error("HubSpot code exchange failed (%d): %s", resp.status_code, resp.text[:500])
            raise CodeExchangeFailed(resp.text)
        return TokenGrant.model_validate(resp.json())

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        try:
            resp = await self._http.post(
                _HS_TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self._settings.hubspot_client_id,
                    "client_secret": self._settings.hubspot_client_secret,
                    "refresh_token": refresh_token,
                },
            )
        except httpx.HTTPError as exc:
            raise RefreshFailed(f"Failed to refresh access token: {exc}") from exc

        if resp.is_error:
            logger.warning("HubSpot token refresh failed (%d): %s", resp.status_code, resp.text[:500])
            raise RefreshFailed("Failed to refresh access token")
        return TokenGrant.model_validate(resp.json())

    async def resolve_tenant(self, access_token: str) -> str:
        try:
            resp = await self._http.get(f"{_HS_TOKEN_INFO_URL}/{access_token}")
        except httpx.HTTPError as exc:
            raise TenantResolutionFailed(f"Failed to fetch HubSpot token info: {exc}") from exc

        if resp.is_error:
            raise TenantResolutionFailed("Failed to fetch HubSpot token info")
        hub_id = resp.json().get("hub_id")
        if hub_id is None:
            raise TenantResolutionFailed("HubSpot token info did not include a hub_id")
        return str(hub_id)
