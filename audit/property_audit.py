"""
Per-object-type property fill-rate report, computed over a record sample.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from audit.probes import percentage
from connectors.crm_api import HubSpotApi
from utils.schemas import PropertyAuditReport, PropertyFillRate

logger = logging.getLogger(__name__)

SUPPORTED_OBJECT_TYPES = ("contacts", "companies", "deals", "tickets")


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


async def audit_object_properties(
    api: HubSpotApi,
    object_type: str,
    sample_size: int,
) -> PropertyAuditReport:
    if object_type not in SUPPORTED_OBJECT_TYPES:
        raise ValueError(f"Unsupported object type: {object_type}")

    definitions = [d for d in await api.list_properties(object_type) if not d.get("hidden")]
    names = [d["name"] for d in definitions]
    records = await api.sample(object_type, names, sample_size) if names else []
    logger.info(
        "[PropertyAudit] %s: %d properties over %d sampled records",
        object_type, len(names), len(records),
    )

    filled: Dict[str, int] = {name: 0 for name in names}
    for record in records:
        props = record.get("properties") or {}
        for name in names:
            if _is_filled(props.get(name)):
                filled[name] += 1

    rows: List[PropertyFillRate] = [
        PropertyFillRate(
            name=d["name"],
            label=d.get("label", ""),
            type=d.get("type", ""),
            is_custom=not d.get("hubspotDefined", False),
            filled_count=filled[d["name"]],
            fill_rate=percentage(filled[d["name"]], len(records)),
        )
        for d in definitions
    ]
    rows.sort(key=lambda r: (r.fill_rate, r.name))

    custom_rates = [r.fill_rate for r in rows if r.is_custom]
    average_custom = percentage(sum(custom_rates), len(custom_rates) * 100)

    return PropertyAuditReport(
        object_type=object_type,
        total_records=len(records),
        total_properties=len(rows),
        average_custom_fill_rate=average_custom,
        properties_with_zero_fill_rate=sum(1 for r in rows if r.fill_rate == 0),
        properties=rows,
    )
