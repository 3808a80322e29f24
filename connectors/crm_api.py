"""
HubSpotApi — thin authenticated wrapper over the HubSpot CRM REST API.

One instance is built per request from a valid access token and shared by
every probe/report in that request (token pass-through; the underlying
``httpx.AsyncClient`` is the process-wide one).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from connectors.errors import CrmApiError

logger = logging.getLogger(__name__)

_HS_API = "https://api.hubapi.com"
_SEARCH_PAGE_LIMIT = 100


def _hs_headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


def has_property(name: str) -> Dict[str, Any]:
    return {"propertyName": name, "operator": "HAS_PROPERTY"}


def not_has_property(name: str) -> Dict[str, Any]:
    return {"propertyName": name, "operator": "NOT_HAS_PROPERTY"}


class HubSpotApi:
    def __init__(self, http: httpx.AsyncClient, access_token: str, base_url: str = _HS_API):
        self._http = http
        self._token = access_token
        self._base_url = base_url.rstrip("/")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            resp = await self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=_hs_headers(self._token),
                json=json,
                params=params,
            )
        except httpx.HTTPError as exc:
            raise CrmApiError(path, None, str(exc)) from exc

        if resp.is_error:
            logger.error("HubSpot %s %s — %d body=%s", method, path, resp.status_code, resp.text[:500])
            raise CrmApiError(path, resp.status_code, resp.text[:500])
        return resp.json()

    # ── CRM objects ─────────────────────────────────────────────────────

    async def search(
        self,
        object_type: str,
        *,
        filter_groups: Optional[List[Dict[str, Any]]] = None,
        properties: Optional[List[str]] = None,
        limit: int = 1,
        after: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"limit": limit}
        if filter_groups:
            body["filterGroups"] = filter_groups
        if properties:
            body["properties"] = properties
        if after:
            body["after"] = after
        return await self._request("POST", f"/crm/v3/objects/{object_type}/search", json=body)

    async def count(
        self,
        object_type: str,
        filter_groups: Optional[List[Dict[str, Any]]] = None,
    ) -> int:
        """Total number of records matching *filter_groups* (all records when omitted)."""
        data = await self.search(
            object_type,
            filter_groups=filter_groups,
            properties=["hs_object_id"],
            limit=1,
        )
        return int(data["total"])

    async def sample(
        self,
        object_type: str,
        properties: List[str],
        limit: int,
        filter_groups: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch up to *limit* records, following ``paging.next.after``."""
        records: List[Dict[str, Any]] = []
        after: Optional[str] = None
        while len(records) < limit:
            page = await self.search(
                object_type,
                filter_groups=filter_groups,
                properties=properties,
                limit=min(_SEARCH_PAGE_LIMIT, limit - len(records)),
                after=after,
            )
            records.extend(page.get("results", []))
            after = (page.get("paging") or {}).get("next", {}).get("after")
            if not after or not page.get("results"):
                break
        return records[:limit]

    async def aggregate(self, object_type: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/crm/v3/objects/{object_type}/aggregation", json=body)

    # ── Schemas & automation ────────────────────────────────────────────

    async def list_properties(self, object_type: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/crm/v3/properties/{object_type}")
        return data.get("results", [])

    async def list_workflows(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/automation/v3/workflows")
        # v3 lists under "workflows"; some portals still answer with "results".
        return data.get("workflows") or data.get("results") or []
