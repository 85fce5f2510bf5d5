# tests/conftest.py

import os
from dataclasses import replace
from datetime import datetime, UTC

import pytest
from fastapi.testclient import TestClient

# Test credentials must be in place before the app reads its settings
os.environ.update(
    {
        "LOGIN_USERNAME": "inspector",
        "LOGIN_PASSWORD": "s3cret-pass",
        "SECRET_KEY": "test-secret",
        "ONEDRIVE_FOLDER_PATH": "Equipment",
    }
)

from equipment_portal.config import get_settings, load_settings  # noqa: E402
from equipment_portal.errors import RemoteUnavailable  # noqa: E402
from equipment_portal.main import app  # noqa: E402
from equipment_portal.services.graph_drive import (  # noqa: E402
    ReadLocator,
    RemoteFileDescriptor,
    get_drive_client,
    join_path,
)

get_settings.cache_clear()
TEST_SETTINGS = replace(
    load_settings(),
    tenant_id="tenant",
    client_id="client",
    client_secret="secret",
    onedrive_user="owner@example.com",
    onedrive_folder_path="Equipment",
)


def make_entry(name, modified, *, item_id=None, folder=False):
    return RemoteFileDescriptor(
        id=item_id or f"id-{name}",
        name=name,
        last_modified=datetime.fromisoformat(modified).replace(tzinfo=UTC),
        is_file=not folder,
        is_folder=folder,
    )


class FakeDrive:
    """In-memory stand-in for the Graph transport, keyed by drive path."""

    def __init__(self, settings=TEST_SETTINGS):
        self.settings = settings
        self.children = {}
        self.by_id = {}
        self.by_path = {}
        self.uploads = {}
        self.listed = []
        self.fail_with = None

    def add_file(self, folder_path, entry, content=b""):
        self.children.setdefault(folder_path, []).append(entry)
        self.by_id[entry.id] = content
        self.by_path[join_path(folder_path, entry.name)] = content

    def add_folder(self, folder_path, name):
        self.children.setdefault(folder_path, []).append(make_entry(name, "2024-01-01T00:00:00", folder=True))

    def _maybe_fail(self, message, **kwargs):
        if self.fail_with:
            raise RemoteUnavailable(message, self.fail_with, status=503, **kwargs)

    def list_children(self, folder_path):
        self._maybe_fail("Failed to list folder")
        self.listed.append(folder_path)
        return list(self.children.get(folder_path, []))

    def get_content(self, locator: ReadLocator):
        self._maybe_fail("Could not fetch Excel file")
        store = self.by_id if locator.item_id else self.by_path
        key = locator.item_id or locator.path
        if key not in store:
            raise RemoteUnavailable("Could not fetch Excel file", "Graph API error 404: itemNotFound", status=404)
        return store[key]

    def put_content(self, path, content):
        self._maybe_fail("Failed to save backup Excel file; the original file was not modified", original_preserved=True)
        self.uploads[path] = content
        return {"name": path.rsplit("/", 1)[-1]}


@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def anonymous_client(drive):
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
    app.dependency_overrides[get_drive_client] = lambda: drive
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def client(anonymous_client):
    """TestClient with a signed-in session cookie."""
    resp = anonymous_client.post(
        "/api/login",
        json={"username": TEST_SETTINGS.login_username, "password": TEST_SETTINGS.login_password},
    )
    assert resp.status_code == 200
    return anonymous_client
