"""
Audit API routes — readiness audit, property report, data health.

Route prefix: /api
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.dependencies import (
    get_hubspot_api,
    get_http_client,
    get_settings,
    get_tenant_key,
    get_token_manager,
)
from audit.aggregator import AuditRunner
from audit.data_health import DETAIL_TYPES, data_health_details, summarize_data_health
from audit.property_audit import SUPPORTED_OBJECT_TYPES, audit_object_properties
from config.settings import Settings
from connectors.crm_api import HubSpotApi
from connectors.token_manager import TokenManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["audit"])


def get_audit_runner(request: Request) -> AuditRunner:
    return request.app.state.audit_runner


@router.get("/ai-readiness-audit")
async def ai_readiness_audit(
    tenant_key: str = Depends(get_tenant_key),
    runner: AuditRunner = Depends(get_audit_runner),
) -> Dict[str, Any]:
    """Run every readiness probe concurrently and return them in report order."""
    envelope = await runner.run_audit(tenant_key)
    return envelope.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("/audit")
async def property_audit(
    object_type: str = Query("contacts", alias="objectType"),
    tenant_key: str = Depends(get_tenant_key),
    token_manager: TokenManager = Depends(get_token_manager),
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Sampled per-property fill rates for one object type."""
    if object_type not in SUPPORTED_OBJECT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported objectType '{object_type}'. Use one of: {', '.join(SUPPORTED_OBJECT_TYPES)}.",
        )
    api = HubSpotApi(http, await token_manager.get_valid_access_token(tenant_key))
    report = await audit_object_properties(api, object_type, settings.audit_sample_size)
    return report.model_dump(by_alias=True)


@router.get("/data-health")
async def data_health(
    api: HubSpotApi = Depends(get_hubspot_api),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    summary = await summarize_data_health(api, settings.audit_sample_size)
    return summary.model_dump(by_alias=True)


@router.get("/data-health/details")
async def data_health_drilldown(
    detail_type: Optional[str] = Query(None, alias="type"),
    tenant_key: str = Depends(get_tenant_key),
    token_manager: TokenManager = Depends(get_token_manager),
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Sample records behind one data-health finding."""
    if detail_type not in DETAIL_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid type '{detail_type}'. Use one of: {', '.join(DETAIL_TYPES)}.",
        )
    api = HubSpotApi(http, await token_manager.get_valid_access_token(tenant_key))
    details = await data_health_details(api, detail_type, settings.audit_sample_size)
    return details.model_dump()
