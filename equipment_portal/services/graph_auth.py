from __future__ import annotations

import logging
from typing import Optional

import requests

from equipment_portal.config import Settings
from equipment_portal.errors import RemoteUnavailable

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"


class ClientCredentialsTokenProvider:
    """
    Fetches an app-only Graph token with the client-credentials grant.
    Every call asks the identity platform for a fresh token; nothing is cached.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def get_token(self) -> str:
        settings = self.settings
        if not (settings.tenant_id and settings.client_id and settings.client_secret):
            raise RemoteUnavailable(
                "Graph credentials are not configured",
                "TENANT_ID, CLIENT_ID and CLIENT_SECRET must be set in environment.",
            )

        url = TOKEN_URL_TEMPLATE.format(tenant=settings.tenant_id)
        try:
            resp = self.session.post(
                url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": settings.client_id,
                    "client_secret": settings.client_secret,
                    "scope": GRAPH_SCOPE,
                },
                timeout=settings.graph_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Token request failed: %s", exc)
            raise RemoteUnavailable("Could not acquire access token", exc) from exc

        if resp.status_code // 100 != 2:
            try:
                body = resp.json()
                msg = body.get("error_description") or body.get("error") or resp.text
            except ValueError:
                msg = resp.text
            logger.error("Token endpoint returned %s: %s", resp.status_code, msg)
            raise RemoteUnavailable("Could not acquire access token", msg, status=resp.status_code)

        try:
            token = resp.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoteUnavailable("Could not acquire access token", "response has no access_token") from exc
        return str(token)
