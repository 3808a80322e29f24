"""
Connector API routes — HubSpot install redirect and OAuth callback.

Route prefix: /api
"""

from __future__ import annotations

import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from connectors.errors import ConnectorError, MissingAuthCode
from connectors.install import InstallFlow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])


def get_install_flow(request: Request) -> InstallFlow:
    return request.app.state.install_flow


@router.get("/install")
async def install(flow: InstallFlow = Depends(get_install_flow)) -> RedirectResponse:
    """Send the browser to HubSpot's consent screen."""
    return RedirectResponse(flow.begin_install(), status_code=status.HTTP_302_FOUND)


@router.get("/oauth-callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    flow: InstallFlow = Depends(get_install_flow),
):
    """
    OAuth callback — HubSpot redirects here after consent.

    Exchanges the code, stores the tokens and forwards the browser to the
    app with the portal id in the query string.
    """
    try:
        landing_url = await flow.handle_callback(code)
    except MissingAuthCode as exc:
        return PlainTextResponse(str(exc), status_code=exc.status_code)
    except ConnectorError as exc:
        logger.error("OAuth callback failed: %s", exc)
        return HTMLResponse(_error_html(str(exc)), status_code=exc.status_code)

    return RedirectResponse(landing_url, status_code=status.HTTP_302_FOUND)


def _error_html(message: str) -> str:
    return f"<h1>Server Error</h1><p>{html.escape(message)}</p>"
