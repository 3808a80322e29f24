"""
Tests for the audit routes, error mapping and the SPA catch-all.
"""

import httpx
import pytest

from conftest import make_credential
from config.settings import Settings
from main import create_app

HEADERS = {"X-HubSpot-Portal-Id": "4242"}


def _fake_portal(hubspot) -> None:
    hubspot.on("POST", "/crm/v3/objects/contacts/search", {"total": 10, "results": []})
    hubspot.on("POST", "/crm/v3/objects/companies/search", {"total": 4, "results": []})
    hubspot.on("POST", "/crm/v3/objects/deals/search", {"total": 2, "results": []})
    hubspot.on("GET", "/crm/v3/properties/contacts", {"results": [{"name": "tier", "description": "Tier"}]})
    hubspot.on("POST", "/crm/v3/objects/contacts/aggregation", {"results": [{"label": "lead", "count": 10}]})
    hubspot.on("GET", "/automation/v3/workflows", {"workflows": [{"enabled": True}]})


class TestReadinessAudit:
    @pytest.mark.asyncio
    async def test_missing_portal_header_is_400(self, client, hubspot):
        resp = await client.get("/api/ai-readiness-audit")

        assert resp.status_code == 400
        assert resp.json() == {"message": "HubSpot Portal ID is missing."}
        assert hubspot.calls == []

    @pytest.mark.asyncio
    async def test_unknown_installation_is_500_message(self, client):
        resp = await client.get("/api/ai-readiness-audit", headers=HEADERS)

        assert resp.status_code == 500
        assert resp.json()["message"].startswith("Could not find installation.")

    @pytest.mark.asyncio
    async def test_refresh_failure_is_500_message(self, client, store, hubspot):
        await store.upsert(make_credential("4242", expires_in=-60))
        hubspot.on("POST", "/oauth/v1/token", {"status": "BAD_REFRESH_TOKEN"}, status=400)

        resp = await client.get("/api/ai-readiness-audit", headers=HEADERS)

        assert resp.status_code == 500
        assert resp.json() == {"message": "Failed to refresh access token"}

    @pytest.mark.asyncio
    async def test_envelope_lists_every_probe_in_order(self, client, app, store, hubspot):
        await store.upsert(make_credential("4242"))
        _fake_portal(hubspot)

        resp = await client.get("/api/ai-readiness-audit", headers=HEADERS)

        assert resp.status_code == 200
        payload = resp.json()
        assert set(payload) == {"auditResults", "timestamp"}
        expected = [p.metric for p in app.state.audit_runner.probes]
        assert [r["metric"] for r in payload["auditResults"]] == expected
        assert all("value" in r for r in payload["auditResults"])

        auth = {c.headers["authorization"] for c in hubspot.calls}
        assert auth == {"Bearer access-old"}

    @pytest.mark.asyncio
    async def test_failing_endpoint_degrades_one_entry(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))
        _fake_portal(hubspot)
        hubspot.on("GET", "/automation/v3/workflows", {"message": "forbidden"}, status=403)

        resp = await client.get("/api/ai-readiness-audit", headers=HEADERS)

        assert resp.status_code == 200
        by_metric = {r["metric"]: r["value"] for r in resp.json()["auditResults"]}
        assert by_metric["Active Workflow Count"] == "API Error"
        assert by_metric["Contact to Company Association Rate"] == "100%"


class TestPropertyAuditRoute:
    @pytest.mark.asyncio
    async def test_unsupported_object_type_is_400(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))

        resp = await client.get("/api/audit", params={"objectType": "widgets"}, headers=HEADERS)

        assert resp.status_code == 400
        assert "widgets" in resp.json()["message"]
        assert hubspot.calls == []

    @pytest.mark.asyncio
    async def test_defaults_to_contacts(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))
        hubspot.on("GET", "/crm/v3/properties/contacts", {"results": [{"name": "tier", "label": "Tier"}]})
        hubspot.on(
            "POST",
            "/crm/v3/objects/contacts/search",
            {"results": [{"id": "1", "properties": {"tier": "gold"}}]},
        )

        resp = await client.get("/api/audit", headers=HEADERS)

        assert resp.status_code == 200
        payload = resp.json()
        assert payload["objectType"] == "contacts"
        assert payload["properties"][0]["fillRate"] == 100


class TestDataHealthRoutes:
    @pytest.mark.asyncio
    async def test_summary(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))
        hubspot.on("POST", "/crm/v3/objects/contacts/search", {"total": 3, "results": []})
        hubspot.on("POST", "/crm/v3/objects/companies/search", {"total": 1, "results": []})

        resp = await client.get("/api/data-health", headers=HEADERS)

        assert resp.status_code == 200
        assert resp.json() == {
            "orphanedContacts": 3,
            "emptyCompanies": 1,
            "contactDuplicatesInSample": 0,
            "companyDuplicatesInSample": 0,
        }

    @pytest.mark.asyncio
    async def test_upstream_failure_maps_to_message(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))
        hubspot.on("POST", "/crm/v3/objects/contacts/search", {"message": "boom"}, status=502)
        hubspot.on("POST", "/crm/v3/objects/companies/search", {"total": 1, "results": []})

        resp = await client.get("/api/data-health", headers=HEADERS)

        assert resp.status_code == 500
        assert "/crm/v3/objects/contacts/search" in resp.json()["message"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{}, {"type": "everything"}])
    async def test_invalid_detail_type_is_400(self, client, store, hubspot, params):
        await store.upsert(make_credential("4242"))

        resp = await client.get("/api/data-health/details", params=params, headers=HEADERS)

        assert resp.status_code == 400
        assert "Invalid type" in resp.json()["message"]
        assert hubspot.calls == []

    @pytest.mark.asyncio
    async def test_empty_company_details(self, client, store, hubspot):
        await store.upsert(make_credential("4242"))
        hubspot.on(
            "POST",
            "/crm/v3/objects/companies/search",
            {"results": [{"id": "9", "properties": {"name": "Acme", "domain": "acme.com"}}]},
        )

        resp = await client.get("/api/data-health/details", params={"type": "emptyCompanies"}, headers=HEADERS)

        assert resp.status_code == 200
        assert resp.json() == {"results": [{"id": "9", "properties": {"name": "Acme", "domain": "acme.com"}}]}


class TestSingleTenantMode:
    @pytest.mark.asyncio
    async def test_header_is_not_required(self, settings, http_client, engine, store, hubspot):
        single = Settings(**{**settings.model_dump(), "tenant_mode": "single"}, _env_file=None)
        app = create_app(single, http_client=http_client, engine=engine)
        await store.upsert(make_credential(single.single_tenant_key))
        hubspot.on("POST", "/crm/v3/objects/contacts/search", {"total": 0, "results": []})
        hubspot.on("POST", "/crm/v3/objects/companies/search", {"total": 0, "results": []})

        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
            resp = await c.get("/api/data-health", headers={"X-HubSpot-Portal-Id": "999"})

        assert resp.status_code == 200
        assert resp.json()["orphanedContacts"] == 0


class TestSpaShell:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/", "/reports/contacts"])
    async def test_unknown_paths_serve_index(self, client, path):
        resp = await client.get(path)

        assert resp.status_code == 200
        assert "<title>HubSpot Data-Readiness Audit</title>" in resp.text
