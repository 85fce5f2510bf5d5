from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

import requests
from fastapi import Depends

from equipment_portal.config import Settings, get_settings
from equipment_portal.errors import RemoteUnavailable
from equipment_portal.services.graph_auth import ClientCredentialsTokenProvider
from equipment_portal.services.xlsx_io import XLSX_MEDIA_TYPE

logger = logging.getLogger(__name__)

GRAPH_BASE = "https://graph.microsoft.com/v1.0"


@dataclass(frozen=True)
class RemoteFileDescriptor:
    id: str
    name: str
    last_modified: datetime
    is_file: bool = True
    is_folder: bool = False


@dataclass(frozen=True)
class ReadLocator:
    """Either a store item id or a path relative to the drive root."""

    item_id: Optional[str] = None
    path: Optional[str] = None

    def describe(self) -> str:
        return f"item {self.item_id}" if self.item_id else f"path {self.path}"


def join_path(*parts: Optional[str]) -> str:
    segments: List[str] = []
    for part in parts:
        if part:
            segments.extend(seg for seg in part.split("/") if seg)
    return "/".join(segments)


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=UTC)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def descriptor_from_item(item: Dict[str, Any]) -> RemoteFileDescriptor:
    return RemoteFileDescriptor(
        id=str(item.get("id", "")),
        name=str(item.get("name", "")),
        last_modified=_parse_timestamp(item.get("lastModifiedDateTime")),
        is_file="file" in item,
        is_folder="folder" in item,
    )


def _error_message(resp: requests.Response) -> str:
    try:
        err = resp.json()
        return err.get("error", {}).get("message") or resp.text
    except ValueError:
        return resp.text


class GraphDriveClient:
    """
    Thin Microsoft Graph wrapper over one user's OneDrive.
    Each call fetches its own bearer token from the token provider.
    """

    def __init__(
        self,
        settings: Settings,
        token_provider: Optional[ClientCredentialsTokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.token_provider = token_provider or ClientCredentialsTokenProvider(settings, self.session)

    def _drive_url(self) -> str:
        if not self.settings.onedrive_user:
            raise RemoteUnavailable("OneDrive user is not configured", "ONEDRIVE_USER must be set in environment.")
        return f"{GRAPH_BASE}/users/{quote(self.settings.onedrive_user, safe='@')}/drive"

    def _path_url(self, path: str, suffix: str) -> str:
        if not path:
            return f"{self._drive_url()}/root/{suffix}"
        return f"{self._drive_url()}/root:/{quote(path, safe='/')}:/{suffix}"

    def _request(self, method: str, url: str, failure: str, **kwargs) -> requests.Response:
        token = self.token_provider.get_token()
        headers = kwargs.pop("headers", {}) or {}
        headers["Authorization"] = f"Bearer {token}"
        original_preserved = kwargs.pop("original_preserved", False)
        try:
            resp = self.session.request(method, url, headers=headers, timeout=self.settings.graph_timeout, **kwargs)
        except requests.RequestException as exc:
            logger.error("%s: %s %s raised %s", failure, method, url, exc)
            raise RemoteUnavailable(failure, exc, original_preserved=original_preserved) from exc
        if resp.status_code // 100 != 2:
            msg = _error_message(resp)
            logger.error("%s: %s %s returned %s: %s", failure, method, url, resp.status_code, msg)
            raise RemoteUnavailable(
                failure,
                f"Graph API error {resp.status_code}: {msg}",
                status=resp.status_code,
                original_preserved=original_preserved,
            )
        return resp

    def list_children(self, folder_path: str) -> List[RemoteFileDescriptor]:
        url: Optional[str] = self._path_url(folder_path, "children")
        entries: List[RemoteFileDescriptor] = []
        while url:
            data = self._request("GET", url, "Failed to list folder").json()
            entries.extend(descriptor_from_item(item) for item in data.get("value", []))
            url = data.get("@odata.nextLink")
        logger.debug("Listed %d entries under '%s'", len(entries), folder_path)
        return entries

    def get_content(self, locator: ReadLocator) -> bytes:
        if locator.item_id:
            url = f"{self._drive_url()}/items/{quote(locator.item_id, safe='!')}/content"
        else:
            url = self._path_url(locator.path or "", "content")
        return self._request("GET", url, "Could not fetch Excel file").content

    def put_content(self, path: str, content: bytes) -> Dict[str, Any]:
        resp = self._request(
            "PUT",
            self._path_url(path, "content"),
            "Failed to save backup Excel file; the original file was not modified",
            data=content,
            headers={"Content-Type": XLSX_MEDIA_TYPE},
            original_preserved=True,
        )
        try:
            return resp.json()
        except ValueError:
            return {}


def folder_names(entries: Iterable[RemoteFileDescriptor]) -> List[str]:
    return [entry.name for entry in entries if entry.is_folder]


def get_drive_client(settings: Settings = Depends(get_settings)) -> GraphDriveClient:
    return GraphDriveClient(settings)
