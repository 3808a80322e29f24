"""
Credential store — the only code that touches the ``hubspot_tokens`` table.

Rows are keyed by ``tenant_key`` and written exclusively with
``INSERT .. ON CONFLICT (tenant_key) DO UPDATE`` so a tenant never has more
than one row, whichever process writes last.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.encryption import TokenCipher
from database.models import HubSpotToken
from utils.schemas import Credential

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cipher: TokenCipher,
    ):
        self._session_factory = session_factory
        self._cipher = cipher

    async def get(self, tenant_key: str) -> Optional[Credential]:
        """Return the decrypted credential for *tenant_key*, or ``None``."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(HubSpotToken).where(HubSpotToken.tenant_key == tenant_key)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return Credential(
                tenant_key=row.tenant_key,
                access_token=self._cipher.decrypt(row.access_token),
                refresh_token=self._cipher.decrypt(row.refresh_token),
                expires_at=_as_utc(row.expires_at),
            )

    async def upsert(self, credential: Credential) -> None:
        """Insert or overwrite the row for ``credential.tenant_key``."""
        now = datetime.now(timezone.utc)
        values = {
            "tenant_key": credential.tenant_key,
            "access_token": self._cipher.encrypt(credential.access_token),
            "refresh_token": self._cipher.encrypt(credential.refresh_token),
            "expires_at": credential.expires_at,
            "updated_at": now,
        }

        async with self._session_factory() as session:
            insert = self._insert_for(session)
            stmt = insert(HubSpotToken).values(created_at=now, **values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["tenant_key"],
                set_={
                    "access_token": stmt.excluded.access_token,
                    "refresh_token": stmt.excluded.refresh_token,
                    "expires_at": stmt.excluded.expires_at,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.debug("Upserted credential for tenant %s", credential.tenant_key)

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.bind.dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise RuntimeError(f"Credential upserts are not supported on '{dialect}'") from None
