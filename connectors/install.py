"""
Install / callback flow — one-time authorization-code exchange.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.errors import MissingAuthCode
from connectors.token_manager import TokenManager

logger = logging.getLogger(__name__)


class InstallFlow:
    def __init__(self, settings: Settings, connector: BaseConnector, token_manager: TokenManager):
        self._settings = settings
        self._connector = connector
        self._token_manager = token_manager

    def begin_install(self) -> str:
        """Authorization URL the browser should be redirected to."""
        return self._connector.get_auth_url()

    async def handle_callback(self, code: Optional[str]) -> str:
        """
        Exchange *code*, resolve the portal, persist tokens.

        Returns the landing URL (carrying ``portalId``) to redirect to.
        Re-running with a fresh code simply overwrites the stored record.
        """
        if not code:
            raise MissingAuthCode()

        grant = await self._connector.exchange_code(code)
        portal_id = await self._connector.resolve_tenant(grant.access_token)
        tenant_key = self._settings.tenant_key_for(portal_id)

        await self._token_manager.store_installation(tenant_key, grant)
        logger.info("HubSpot installed for portal %s (tenant key %s)", portal_id, tenant_key)

        return f"{self._settings.app_base_url}/?{urlencode({'portalId': portal_id})}"
