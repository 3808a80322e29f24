"""
HubSpot Data-Readiness Audit — application entry point.
"""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from api.middleware import register_exception_handlers, register_middleware
from audit.aggregator import AuditRunner
from audit.probes import default_probes
from audit.routes import router as audit_router
from config.settings import Settings
from connectors.encryption import TokenCipher
from connectors.hubspot import HubSpotConnector
from connectors.install import InstallFlow
from connectors.routes import router as connector_router
from connectors.token_manager import TokenManager
from database.credential_store import CredentialStore
from database.session import build_engine, build_session_factory, init_models
from utils.http_client import build_http_client

logger = logging.getLogger(__name__)

FRONTEND_DIR = pathlib.Path(__file__).resolve().parent / "frontend"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "asyncio", "aiosqlite"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="HubSpot Data-Readiness Audit",
        version="1.0.0",
        description="OAuth-connected HubSpot audits: fill rates, associations, workflows.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Components — built once, shared by every request
    http = http_client or build_http_client(settings)
    engine = engine or build_engine(settings)
    store = CredentialStore(build_session_factory(engine), TokenCipher(settings.token_encryption_key))
    connector = HubSpotConnector(settings, http)
    token_manager = TokenManager(
        store,
        connector,
        expiry_buffer_seconds=settings.token_expiry_buffer_seconds,
    )

    app.state.settings = settings
    app.state.http_client = http
    app.state.engine = engine
    app.state.token_manager = token_manager
    app.state.install_flow = InstallFlow(settings, connector, token_manager)
    app.state.audit_runner = AuditRunner(token_manager, http, default_probes(settings))

    # Routes
    app.include_router(connector_router, prefix="/api")
    app.include_router(audit_router, prefix="/api")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_shell(full_path: str) -> FileResponse:
        """Serve a built frontend asset if it exists, else the SPA shell."""
        if full_path:
            candidate = (FRONTEND_DIR / full_path).resolve()
            if candidate.is_file() and candidate.is_relative_to(FRONTEND_DIR):
                return FileResponse(candidate)
        index = FRONTEND_DIR / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Frontend not built")
        return FileResponse(index)

    @app.on_event("startup")
    async def on_startup():
        await init_models(engine)
        if not connector.is_configured():
            logger.warning("HUBSPOT_CLIENT_ID / HUBSPOT_CLIENT_SECRET not set — installs will fail")
        logger.info(
            "Tenant mode: %s; OAuth redirect URI: %s",
            settings.tenant_mode,
            settings.redirect_uri,
        )
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await http.aclose()
        await engine.dispose()

    return app


config = Settings()
configure_logging(config)
app = create_app(config)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
