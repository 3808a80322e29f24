"""
Process-wide outbound HTTP client.

Every call to HubSpot (OAuth endpoints and CRM REST endpoints) goes through
the ``httpx.AsyncClient`` built here, so the timeout and retry policy are set
in exactly one place.
"""

from __future__ import annotations

import httpx

from config.settings import Settings


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """
    Build the shared async client.

    ``http_max_retries`` is the transport-level retry count for failed
    connection attempts; HTTP error responses are never retried.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        transport=httpx.AsyncHTTPTransport(retries=settings.http_max_retries),
        headers={"Accept": "application/json"},
    )
