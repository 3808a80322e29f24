"""
Readiness probes — one self-contained HubSpot metric each.

Every probe implements ``measure(api)``; callers use ``compute(api)``,
which never raises: any failure inside the probe becomes a
``MetricResult`` whose value is ``API_ERROR``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from config.settings import Settings
from connectors.crm_api import HubSpotApi, has_property
from utils.schemas import CategoryCount, MetricResult

logger = logging.getLogger(__name__)

API_ERROR = "API Error"
NOT_APPLICABLE = "N/A"

COMPANY_ASSOCIATION_PROPERTY = "associations.company"


class ProbeError(Exception):
    """A HubSpot response was readable but not usable for this metric."""


def percentage(part: int, total: int) -> int:
    """Integer percentage, rounded half up; 0 when *total* is 0."""
    if total <= 0:
        return 0
    return math.floor(part / total * 100 + 0.5)


def fmt_count(value: int) -> str:
    return f"{value:,}"


class Probe(ABC):
    metric: str = ""
    error_description: str = "Could not fetch data for this metric from HubSpot."

    @abstractmethod
    async def measure(self, api: HubSpotApi) -> MetricResult:
        ...

    async def compute(self, api: HubSpotApi) -> MetricResult:
        try:
            return await self.measure(api)
        except Exception as exc:
            logger.warning("Probe '%s' failed: %s", self.metric, exc)
            return self.failed()

    def failed(self) -> MetricResult:
        return MetricResult(metric=self.metric, value=API_ERROR, description=self.error_description)


class AssociationRateProbe(Probe):
    metric = "Contact to Company Association Rate"
    error_description = "Failed to fetch contact association data."

    async def measure(self, api: HubSpotApi) -> MetricResult:
        total, associated = await asyncio.gather(
            api.count("contacts"),
            api.count("contacts", [{"filters": [has_property(COMPANY_ASSOCIATION_PROPERTY)]}]),
        )
        return MetricResult(
            metric=self.metric,
            value=f"{percentage(associated, total)}%",
            description=(
                f"Of {fmt_count(total)} total contacts, {fmt_count(associated)} "
                "are associated with a company."
            ),
        )


class FillRateProbe(Probe):
    """Share of records with at least one of *properties* populated."""

    def __init__(self, object_type: str, properties: Sequence[str], metric: str):
        if not properties:
            raise ValueError("FillRateProbe needs at least one property")
        self.object_type = object_type
        self.properties = list(properties)
        self.metric = metric
        self.error_description = f"Failed to fetch {object_type} fill-rate data."

    async def measure(self, api: HubSpotApi) -> MetricResult:
        # Filter groups are OR-ed together by the search API.
        any_populated = [{"filters": [has_property(name)]} for name in self.properties]
        total, matching = await asyncio.gather(
            api.count(self.object_type),
            api.count(self.object_type, any_populated),
        )
        return MetricResult(
            metric=self.metric,
            value=f"{percentage(matching, total)}%",
            description=(
                f"{fmt_count(matching)} of {fmt_count(total)} {self.object_type} have at least "
                f"one of: {', '.join(self.properties)}."
            ),
        )


class PropertyDefinitionQualityProbe(Probe):
    """Share of custom property definitions that carry a description."""

    def __init__(self, object_type: str, metric: str):
        self.object_type = object_type
        self.metric = metric
        self.error_description = f"Failed to fetch {object_type} property definitions."

    async def measure(self, api: HubSpotApi) -> MetricResult:
        definitions = await api.list_properties(self.object_type)
        custom = [d for d in definitions if not d.get("hubspotDefined")]
        if not custom:
            return MetricResult(
                metric=self.metric,
                value=NOT_APPLICABLE,
                description=f"No custom {self.object_type} properties are defined.",
            )

        described = sum(1 for d in custom if (d.get("description") or "").strip())
        return MetricResult(
            metric=self.metric,
            value=f"{percentage(described, len(custom))}%",
            description=(
                f"{described} of {len(custom)} custom {self.object_type} properties "
                "have a description."
            ),
        )


class StaleRecordProbe(Probe):
    """Open records whose last activity is older than ``days``."""

    metric = "Stale Open Deals"
    error_description = "Failed to fetch deal activity data."

    def __init__(
        self,
        days: int = 30,
        *,
        object_type: str = "deals",
        activity_property: str = "notes_last_updated",
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.days = days
        self.object_type = object_type
        self.activity_property = activity_property
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def measure(self, api: HubSpotApi) -> MetricResult:
        cutoff = self._now() - timedelta(days=self.days)
        cutoff_ms = int(cutoff.timestamp() * 1000)
        stale = await api.count(
            self.object_type,
            [
                {
                    "filters": [
                        {"propertyName": "hs_is_closed", "operator": "EQ", "value": "false"},
                        {"propertyName": self.activity_property, "operator": "LT", "value": str(cutoff_ms)},
                    ]
                }
            ],
        )
        return MetricResult(
            metric=self.metric,
            value=fmt_count(stale),
            description=f"Open {self.object_type} with no activity in the last {self.days} days.",
        )


class CategoricalDistributionProbe(Probe):
    """Per-value breakdown of a categorical property (aggregation API)."""

    def __init__(
        self,
        object_type: str,
        property_name: str,
        metric: str,
        *,
        unit: str = "values",
        description: str = "",
        error_description: str = "",
    ):
        self.object_type = object_type
        self.property_name = property_name
        self.metric = metric
        self.unit = unit
        self.description = description or f"The breakdown of {object_type} by {property_name}."
        self.error_description = error_description or f"Could not fetch {property_name} data."

    async def measure(self, api: HubSpotApi) -> MetricResult:
        data = await api.aggregate(
            self.object_type,
            {"aggregations": [{"propertyName": self.property_name, "aggregationType": "COUNT"}]},
        )
        results = data.get("results")
        if not isinstance(results, list):
            raise ProbeError(f"aggregation response for {self.property_name} has no results list")

        distribution = [
            CategoryCount(label=str(item.get("label", "")), count=int(item.get("count", 0)))
            for item in results
        ]
        return MetricResult(
            metric=self.metric,
            value=f"{len(distribution)} {self.unit} in use",
            details=distribution,
            description=self.description,
        )


class ActiveWorkflowCountProbe(Probe):
    metric = "Active Workflow Count"
    error_description = (
        'Could not fetch workflow data. Your granted scopes may not include '
        '"automation.workflows.read" or the portal may not have access to this API.'
    )

    async def measure(self, api: HubSpotApi) -> MetricResult:
        workflows = await api.list_workflows()
        active = sum(1 for wf in workflows if wf.get("enabled"))
        return MetricResult(
            metric=self.metric,
            value=fmt_count(active),
            description=f"There are {active} active workflows in this portal.",
        )


def default_probes(settings: Settings) -> List[Probe]:
    """The readiness audit, in report order."""
    return [
        AssociationRateProbe(),
        FillRateProbe("contacts", ("email", "phone"), metric="Contact Reachability Fill Rate"),
        FillRateProbe("companies", ("domain", "industry"), metric="Company Firmographic Fill Rate"),
        PropertyDefinitionQualityProbe("contacts", metric="Custom Contact Property Documentation Rate"),
        StaleRecordProbe(days=settings.stale_after_days),
        CategoricalDistributionProbe(
            "contacts",
            "lifecyclestage",
            metric="Lifecycle Stage Distribution",
            unit="stages",
            description="The breakdown of contacts by their current lifecycle stage.",
            error_description=(
                "Could not fetch lifecycle stage data. This API may require a "
                "Marketing Hub Professional subscription or higher."
            ),
        ),
        ActiveWorkflowCountProbe(),
    ]
