"""
Tests for the credential store (upsert semantics, encryption at rest).
"""

from datetime import timezone

import pytest
from cryptography.fernet import Fernet
from sqlalchemy import func, select

from conftest import make_credential
from connectors.encryption import TokenCipher
from database.credential_store import CredentialStore
from database.models import HubSpotToken
from database.session import build_session_factory


async def _row_count(engine) -> int:
    async with build_session_factory(engine)() as session:
        return (await session.execute(select(func.count()).select_from(HubSpotToken))).scalar_one()


class TestCredentialStore:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_upsert_then_get_round_trips_timezone_aware(self, store):
        credential = make_credential("4242")
        await store.upsert(credential)

        loaded = await store.get("4242")
        assert loaded.access_token == "access-old"
        assert loaded.refresh_token == "refresh-old"
        assert loaded.expires_at.tzinfo is not None
        assert loaded.expires_at.astimezone(timezone.utc).replace(microsecond=0) == (
            credential.expires_at.replace(microsecond=0)
        )

    @pytest.mark.asyncio
    async def test_upsert_overwrites_instead_of_duplicating(self, store, engine):
        await store.upsert(make_credential("4242"))
        await store.upsert(make_credential("4242", access_token="access-new", refresh_token="refresh-new"))

        assert await _row_count(engine) == 1
        loaded = await store.get("4242")
        assert loaded.access_token == "access-new"
        assert loaded.refresh_token == "refresh-new"

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, store, engine):
        await store.upsert(make_credential("1"))
        await store.upsert(make_credential("2", access_token="other"))

        assert await _row_count(engine) == 2
        assert (await store.get("1")).access_token == "access-old"
        assert (await store.get("2")).access_token == "other"


class TestEncryptionAtRest:
    @pytest.mark.asyncio
    async def test_tokens_are_encrypted_in_the_table(self, engine):
        cipher = TokenCipher(Fernet.generate_key().decode())
        store = CredentialStore(build_session_factory(engine), cipher)
        await store.upsert(make_credential("4242"))

        async with build_session_factory(engine)() as session:
            row = (await session.execute(select(HubSpotToken))).scalar_one()
        assert row.access_token != "access-old"
        assert row.refresh_token != "refresh-old"

        loaded = await store.get("4242")
        assert loaded.access_token == "access-old"
        assert loaded.refresh_token == "refresh-old"

    def test_plaintext_rows_survive_enabling_encryption(self):
        cipher = TokenCipher(Fernet.generate_key().decode())
        assert cipher.enabled
        assert cipher.decrypt("legacy-plaintext") == "legacy-plaintext"

    def test_cipher_without_key_is_passthrough(self):
        cipher = TokenCipher("")
        assert not cipher.enabled
        assert cipher.encrypt("abc") == "abc"
        assert cipher.decrypt("abc") == "abc"
