"""
AuditRunner — runs the readiness probes concurrently for one tenant.

Authentication failures abort the whole audit; individual probe failures
only degrade their own entry.  Results keep the probes' declaration order.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Sequence

import httpx

from audit.probes import Probe
from connectors.crm_api import HubSpotApi
from connectors.token_manager import TokenManager
from utils.schemas import AuditEnvelope, MetricResult

logger = logging.getLogger(__name__)


class AuditRunner:
    def __init__(
        self,
        token_manager: TokenManager,
        http: httpx.AsyncClient,
        probes: Sequence[Probe],
    ):
        """
        Parameters
        ----------
        token_manager : supplies the tenant's access token
        http          : shared outbound client
        probes        : ordered probe list; the report follows this order
        """
        self._token_manager = token_manager
        self._http = http
        self._probes = list(probes)

    @property
    def probes(self) -> List[Probe]:
        return list(self._probes)

    async def run_audit(self, tenant_key: str) -> AuditEnvelope:
        access_token = await self._token_manager.get_valid_access_token(tenant_key)
        api = HubSpotApi(self._http, access_token)

        logger.info("[Audit] Running %d probes for tenant %s", len(self._probes), tenant_key)
        outcomes = await asyncio.gather(
            *(probe.compute(api) for probe in self._probes),
            return_exceptions=True,
        )

        results: List[MetricResult] = []
        for probe, outcome in zip(self._probes, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Probe '%s' raised past its boundary: %s", probe.metric, outcome)
                results.append(probe.failed())
            else:
                results.append(outcome)

        return AuditEnvelope(audit_results=results, timestamp=datetime.now(timezone.utc))
