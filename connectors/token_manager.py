"""
Token manager — get / refresh / store per-tenant HubSpot tokens.

This is the single interface the rest of the app uses to obtain an access
token for a tenant.  The fast path (token still valid) touches the store
only; the provider is called only when the token has expired.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict

from connectors.base import BaseConnector
from connectors.errors import InstallationMissing
from database.credential_store import CredentialStore
from utils.schemas import Credential, TokenGrant

logger = logging.getLogger(__name__)


class TokenManager:
    def __init__(
        self,
        store: CredentialStore,
        connector: BaseConnector,
        *,
        expiry_buffer_seconds: int = 0,
    ):
        self._store = store
        self._connector = connector
        self._expiry_buffer = timedelta(seconds=expiry_buffer_seconds)
        self._refresh_locks: Dict[str, asyncio.Lock] = {}

    def _get_refresh_lock(self, tenant_key: str) -> asyncio.Lock:
        if tenant_key not in self._refresh_locks:
            self._refresh_locks[tenant_key] = asyncio.Lock()
        return self._refresh_locks[tenant_key]

    def _is_expired(self, credential: Credential) -> bool:
        return credential.expires_at <= datetime.now(timezone.utc) + self._expiry_buffer

    async def get_valid_access_token(self, tenant_key: str) -> str:
        """
        Return a usable access token for *tenant_key*.

        1. Look up the credential; none → ``InstallationMissing``.
        2. Still valid → return it unchanged.
        3. Expired → refresh at the provider (``RefreshFailed`` leaves the
           stored row untouched), persist, return the new token.

        Refreshes are serialized per tenant; a caller that waited on the lock
        re-reads the row and reuses a token its peer just obtained.
        """
        credential = await self._store.get(tenant_key)
        if credential is None:
            raise InstallationMissing(tenant_key)
        if not self._is_expired(credential):
            return credential.access_token

        async with self._get_refresh_lock(tenant_key):
            credential = await self._store.get(tenant_key)
            if credential is None:
                raise InstallationMissing(tenant_key)
            if not self._is_expired(credential):
                return credential.access_token

            logger.info("Refreshing expired access token for tenant %s", tenant_key)
            grant = await self._connector.refresh_access_token(credential.refresh_token)
            refreshed = credential.model_copy(
                update={
                    "access_token": grant.access_token,
                    # HubSpot may rotate refresh tokens; keep ours otherwise.
                    "refresh_token": grant.refresh_token or credential.refresh_token,
                    "expires_at": datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in),
                }
            )
            await self._store.upsert(refreshed)
            return refreshed.access_token

    async def store_installation(self, tenant_key: str, grant: TokenGrant) -> Credential:
        """Persist tokens from a fresh code exchange, replacing any previous install."""
        if not grant.refresh_token:
            logger.warning("Code exchange for tenant %s returned no refresh token", tenant_key)
        credential = Credential(
            tenant_key=tenant_key,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or "",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in),
        )
        await self._store.upsert(credential)
        logger.info("Stored %s installation for tenant %s", self._connector.provider_name, tenant_key)
        return credential
