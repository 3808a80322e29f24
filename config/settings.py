"""
Application settings loaded from environment variables.

Built once in ``main.py`` and handed to every component constructor;
nothing else reads the environment.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── HubSpot OAuth ────────────────────────────────────────────────────
    hubspot_client_id: str = ""
    hubspot_client_secret: str = ""
    app_base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("app_base_url", "render_external_url"),
    )

    # ── Credential storage ───────────────────────────────────────────────
    database_url: str = "postgresql+asyncpg://postgres@localhost:5432/readiness"
    database_password: str = ""          # injected into database_url when set
    token_encryption_key: str = ""       # Fernet key for encrypting OAuth tokens at rest

    # ── Tenancy ──────────────────────────────────────────────────────────
    tenant_mode: Literal["portal", "single"] = "portal"
    single_tenant_key: str = "default"
    token_expiry_buffer_seconds: int = 60

    # ── Outbound HTTP ────────────────────────────────────────────────────
    http_timeout_seconds: float = 15.0
    http_max_retries: int = 0

    # ── Audits ───────────────────────────────────────────────────────────
    audit_sample_size: int = 100
    stale_after_days: int = 30

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 3000
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origins: list = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @field_validator("app_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def redirect_uri(self) -> str:
        return f"{self.app_base_url}/api/oauth-callback"

    def is_hubspot_configured(self) -> bool:
        return bool(self.hubspot_client_id and self.hubspot_client_secret)

    def tenant_key_for(self, portal_id: Optional[str]) -> Optional[str]:
        """
        Map a HubSpot portal id onto the credential-store key.

        In ``single`` mode every portal shares one row; in ``portal`` mode
        the portal id is the key (``None`` when the caller did not send one).
        """
        if self.tenant_mode == "single":
            return self.single_tenant_key
        return str(portal_id) if portal_id else None
