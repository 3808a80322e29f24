"""
FastAPI dependencies (shared across routes).

Components are built once by ``create_app`` and hung off ``app.state``;
these helpers hand them to route handlers.
"""

from __future__ import annotations

from typing import Optional

import httpx
from fastapi import Depends, Header, HTTPException, Request, status

from config.settings import Settings
from connectors.crm_api import HubSpotApi
from connectors.token_manager import TokenManager

PORTAL_ID_HEADER = "X-HubSpot-Portal-Id"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_token_manager(request: Request) -> TokenManager:
    return request.app.state.token_manager


async def get_tenant_key(
    settings: Settings = Depends(get_settings),
    portal_id: Optional[str] = Header(None, alias=PORTAL_ID_HEADER),
) -> str:
    """
    Resolve the credential-store key for this request.

    Portal mode requires the ``X-HubSpot-Portal-Id`` header; single-tenant
    mode ignores it.
    """
    tenant_key = settings.tenant_key_for(portal_id)
    if not tenant_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="HubSpot Portal ID is missing.",
        )
    return tenant_key


async def get_hubspot_api(
    tenant_key: str = Depends(get_tenant_key),
    token_manager: TokenManager = Depends(get_token_manager),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> HubSpotApi:
    """Authenticated API client for the request's tenant (refreshes if needed)."""
    access_token = await token_manager.get_valid_access_token(tenant_key)
    return HubSpotApi(http, access_token)
