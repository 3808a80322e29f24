"""
Error taxonomy for the HubSpot integration.

Every error carries the HTTP status the route boundary should answer with.
"""

from __future__ import annotations

from typing import Optional


class ConnectorError(Exception):
    """Base class for OAuth / token / HubSpot API failures."""

    status_code: int = 500


class InstallationMissing(ConnectorError):
    """No credential record exists for the requested tenant."""

    def __init__(self, tenant_key: str):
        self.tenant_key = tenant_key
        super().__init__(
            "Could not find installation. Please reinstall the app by visiting the install URL."
        )


class RefreshFailed(ConnectorError):
    """HubSpot rejected the refresh token."""


class MissingAuthCode(ConnectorError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("HubSpot authorization code not found.")


class CodeExchangeFailed(ConnectorError):
    """Authorization-code exchange failed; message is the provider's raw body."""


class TenantResolutionFailed(ConnectorError):
    """The portal id could not be read back from the fresh access token."""


class CrmApiError(ConnectorError):
    """Non-success response (or transport failure) from the HubSpot REST API."""

    def __init__(self, path: str, status: Optional[int], body: str):
        self.path = path
        self.status = status
        self.body = body
        where = f"HTTP {status}" if status is not None else "transport error"
        super().__init__(f"HubSpot API request to {path} failed ({where}): {body}")
