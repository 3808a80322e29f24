"""
BaseConnector — abstract interface for an OAuth2 CRM provider.

The token manager and the install flow only talk to this interface; the
provider subclass owns endpoint URLs, scopes and payload shapes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from utils.schemas import TokenGrant


class BaseConnector(ABC):
    """Abstract base for OAuth2 connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug, e.g. 'hubspot'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested at install time."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self) -> str:
        """Build the provider's OAuth2 authorization URL."""
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> TokenGrant:
        """
        Exchange the authorization code for tokens.

        Raises
        ------
        CodeExchangeFailed – provider rejected the code
        """
        ...

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """
        Refresh an expired access token.

        Raises
        ------
        RefreshFailed – provider rejected the refresh token
        """
        ...

    @abstractmethod
    async def resolve_tenant(self, access_token: str) -> str:
        """
        Return the provider account id the token belongs to.

        Raises
        ------
        TenantResolutionFailed
        """
        ...

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """Return True if client id / secret are present."""
        return True
