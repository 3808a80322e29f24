"""
Data-health checks: orphaned contacts, empty companies and duplicates
found in a record sample, plus drill-down listings for each finding.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from audit.probes import COMPANY_ASSOCIATION_PROPERTY
from connectors.crm_api import HubSpotApi, not_has_property
from utils.schemas import DataHealthDetails, DataHealthSummary

logger = logging.getLogger(__name__)

DETAIL_LIMIT = 25

_ORPHANED_CONTACTS = [{"filters": [not_has_property(COMPANY_ASSOCIATION_PROPERTY)]}]
_EMPTY_COMPANIES = [
    {"filters": [{"propertyName": "num_associated_contacts", "operator": "EQ", "value": "0"}]}
]

_CONTACT_PROPERTIES = ["email", "firstname", "lastname"]
_COMPANY_PROPERTIES = ["name", "domain"]


def normalize_email(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip().lower()
    return value or None


def normalize_domain(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip().lower()
    for prefix in ("https://", "http://"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    if value.startswith("www."):
        value = value[4:]
    value = value.rstrip("/")
    return value or None


def duplicate_groups(
    records: List[Dict[str, Any]],
    field: str,
    normalize: Callable[[Optional[str]], Optional[str]],
) -> List[Dict[str, Any]]:
    """Group records sharing a normalized *field* value; largest groups first."""
    groups: Dict[str, List[str]] = defaultdict(list)
    for record in records:
        key = normalize((record.get("properties") or {}).get(field))
        if key:
            groups[key].append(str(record.get("id")))

    dupes = [
        {"value": key, "count": len(ids), "recordIds": ids}
        for key, ids in groups.items()
        if len(ids) > 1
    ]
    dupes.sort(key=lambda g: (-g["count"], g["value"]))
    return dupes


def surplus_count(groups: List[Dict[str, Any]]) -> int:
    """Records beyond the first in each duplicate group."""
    return sum(g["count"] - 1 for g in groups)


async def _contact_duplicates(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    records = await api.sample("contacts", _CONTACT_PROPERTIES, sample_size)
    return duplicate_groups(records, "email", normalize_email)


async def _company_duplicates(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    records = await api.sample("companies", _COMPANY_PROPERTIES, sample_size)
    return duplicate_groups(records, "domain", normalize_domain)


async def summarize_data_health(api: HubSpotApi, sample_size: int) -> DataHealthSummary:
    orphaned, empty, contact_dupes, company_dupes = await asyncio.gather(
        api.count("contacts", _ORPHANED_CONTACTS),
        api.count("companies", _EMPTY_COMPANIES),
        _contact_duplicates(api, sample_size),
        _company_duplicates(api, sample_size),
    )
    return DataHealthSummary(
        orphaned_contacts=orphaned,
        empty_companies=empty,
        contact_duplicates_in_sample=surplus_count(contact_dupes),
        company_duplicates_in_sample=surplus_count(company_dupes),
    )


def _as_rows(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"id": r.get("id"), "properties": r.get("properties") or {}} for r in records]


async def _orphaned_contact_rows(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    records = await api.sample("contacts", _CONTACT_PROPERTIES, DETAIL_LIMIT, _ORPHANED_CONTACTS)
    return _as_rows(records)


async def _empty_company_rows(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    records = await api.sample("companies", _COMPANY_PROPERTIES, DETAIL_LIMIT, _EMPTY_COMPANIES)
    return _as_rows(records)


async def _contact_duplicate_rows(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    return (await _contact_duplicates(api, sample_size))[:DETAIL_LIMIT]


async def _company_duplicate_rows(api: HubSpotApi, sample_size: int) -> List[Dict[str, Any]]:
    return (await _company_duplicates(api, sample_size))[:DETAIL_LIMIT]


DETAIL_TYPES = {
    "orphanedContacts": _orphaned_contact_rows,
    "emptyCompanies": _empty_company_rows,
    "contactDuplicates": _contact_duplicate_rows,
    "companyDuplicates": _company_duplicate_rows,
}


async def data_health_details(api: HubSpotApi, detail_type: str, sample_size: int) -> DataHealthDetails:
    try:
        fetch = DETAIL_TYPES[detail_type]
    except KeyError:
        raise ValueError(f"Invalid detail type: {detail_type}") from None
    return DataHealthDetails(results=await fetch(api, sample_size))
