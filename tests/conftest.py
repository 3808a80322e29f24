"""
Shared fixtures: settings, a fake HubSpot behind httpx.MockTransport,
and a file-backed SQLite credential store.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from config.settings import Settings
from connectors.encryption import TokenCipher
from database.credential_store import CredentialStore
from database.session import build_engine, build_session_factory, init_models
from utils.schemas import Credential

Handler = Union[Callable[[httpx.Request], Any], Dict[str, Any], List[Any]]


class FakeHubSpot:
    """Routes requests by (method, path) and records every call."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[Handler, int]] = {}
        self.calls: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def on(self, method: str, path: str, handler: Handler, status: int = 200) -> None:
        self.routes[(method.upper(), path)] = (handler, status)

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if c.url.path == path]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"no fake for {request.method} {request.url.path}"})
        handler, status = route
        if callable(handler):
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            if isinstance(result, httpx.Response):
                return result
            return httpx.Response(status, json=result)
        return httpx.Response(status, json=handler)


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content or b"{}")


def form_data(request: httpx.Request) -> Dict[str, str]:
    return dict(httpx.QueryParams(request.content.decode()))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        hubspot_client_id="client-123",
        hubspot_client_secret="secret-456",
        app_base_url="https://audit.example.com/",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tokens.db'}",
        database_password="",
        token_encryption_key="",
        tenant_mode="portal",
        token_expiry_buffer_seconds=0,
    )


@pytest.fixture
def hubspot() -> FakeHubSpot:
    return FakeHubSpot()


@pytest_asyncio.fixture
async def http_client(hubspot):
    async with httpx.AsyncClient(transport=hubspot.transport) as client:
        yield client


@pytest_asyncio.fixture
async def engine(settings):
    engine = build_engine(settings)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine) -> CredentialStore:
    return CredentialStore(build_session_factory(engine), TokenCipher(None))


def make_credential(tenant_key: str = "4242", *, expires_in: int = 3600, **overrides) -> Credential:
    values = dict(
        tenant_key=tenant_key,
        access_token="access-old",
        refresh_token="refresh-old",
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
    values.update(overrides)
    return Credential(**values)


@pytest.fixture
def app(settings, http_client, engine):
    from main import create_app

    return create_app(settings, http_client=http_client, engine=engine)


@pytest_asyncio.fixture
async def client(app):
    """ASGI client against the app; redirects are not followed."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
