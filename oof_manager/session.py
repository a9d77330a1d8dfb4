from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import requests

from .config import GraphConfig
from .errors import SessionConnectionError
from .graph_client import GraphClient

LOGGER = logging.getLogger(__name__)

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]


def connect(cfg: GraphConfig) -> GraphClient:
    """
    Authenticate against Entra ID (client credentials) and open a Graph session.

    Raises:
        SessionConnectionError: client library unavailable, credentials missing,
            or token acquisition refused.
    """
    try:
        import msal
    except ImportError as e:
        raise SessionConnectionError(f"MSAL client library could not be loaded: {e}. Install it with: pip install msal")

    missing = [k for k, v in {
        "tenant_id": cfg.tenant_id,
        "client_id": cfg.client_id,
        "client_secret": cfg.client_secret,
    }.items() if not v]
    if missing:
        raise SessionConnectionError(f"Missing Graph credentials: {', '.join(missing)}")

    LOGGER.info(f"Connecting to Microsoft Graph (tenant {cfg.tenant_id})...")
    try:
        app = msal.ConfidentialClientApplication(
            cfg.client_id,
            authority=cfg.authority,
            client_credential=cfg.client_secret,
        )
        result = app.acquire_token_for_client(scopes=GRAPH_SCOPES)
    except Exception as e:
        raise SessionConnectionError(f"Failed to authenticate with Microsoft Graph: {e}")

    if "access_token" not in result:
        detail = result.get("error_description") or result.get("error") or "unknown error"
        raise SessionConnectionError(f"Failed to acquire Graph token: {detail}")

    http = requests.Session()
    http.headers.update({
        "Authorization": f"Bearer {result['access_token']}",
        "Accept": "application/json",
    })
    LOGGER.info("Connected to Microsoft Graph.")
    return GraphClient(http, cfg.base_url, timeout=cfg.timeout_seconds)


def disconnect(client) -> None:
    """Close the session. Errors are logged, never raised."""
    try:
        client.close()
        LOGGER.info("Disconnected from Microsoft Graph.")
    except Exception as e:
        LOGGER.warning(f"Error while disconnecting: {e}")


@contextmanager
def session_scope(cfg: GraphConfig, connector=connect) -> Iterator[GraphClient]:
    client = connector(cfg)
    try:
        yield client
    finally:
        disconnect(client)
