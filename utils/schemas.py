"""
Pydantic schemas for the readiness-audit service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """JSON payloads served to the SPA use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# OAuth
# ═══════════════════════════════════════════════════════════════════════════════


class TokenGrant(BaseModel):
    """Token endpoint response (authorization_code or refresh_token grant)."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 1800


class Credential(BaseModel):
    """Decrypted view of one ``hubspot_tokens`` row."""

    tenant_key: str
    access_token: str
    refresh_token: str
    expires_at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Readiness audit
# ═══════════════════════════════════════════════════════════════════════════════


class CategoryCount(BaseModel):
    label: str
    count: int


class MetricResult(BaseModel):
    metric: str
    value: str
    description: str = ""
    details: Optional[List[CategoryCount]] = None


class AuditEnvelope(_CamelModel):
    audit_results: List[MetricResult] = Field(default_factory=list)
    timestamp: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Property fill-rate report
# ═══════════════════════════════════════════════════════════════════════════════


class PropertyFillRate(_CamelModel):
    name: str
    label: str = ""
    type: str = ""
    is_custom: bool = False
    filled_count: int = 0
    fill_rate: int = 0


class PropertyAuditReport(_CamelModel):
    object_type: str
    total_records: int = 0
    total_properties: int = 0
    average_custom_fill_rate: int = 0
    properties_with_zero_fill_rate: int = 0
    properties: List[PropertyFillRate] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════════
# Data health
# ═══════════════════════════════════════════════════════════════════════════════


class DataHealthSummary(_CamelModel):
    orphaned_contacts: int = 0
    empty_companies: int = 0
    contact_duplicates_in_sample: int = 0
    company_duplicates_in_sample: int = 0


class DataHealthDetails(BaseModel):
    results: List[Dict[str, Any]] = Field(default_factory=list)
