"""
Pytest configuration and shared fixtures.

Provides sample catalog documents, an in-memory count store, a recording
error sink, and a stub GitHub repository served through httpx.MockTransport.
"""

import base64
import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
import pytest

from dlsync.core.catalog.models import DatasetKind, DatasetSpec
from dlsync.core.config import clear_cache
from dlsync.core.config.models import DlsyncConfig, GitHubConfig, StoreConfig
from dlsync.core.exceptions import StoreError
from dlsync.core.github.contents import ContentsClient
from dlsync.core.github.models import Credential

CONTENTS_PREFIX = "/repos/Droptop-Four/GlobalData/contents/"

# Environment variables read by the config loader
CONFIG_ENV_VARS = [
    "GITHUB_APP_ID",
    "GITHUB_PRIVATE_KEY",
    "GITHUB_PRIVATE_KEY_PATH",
    "GITHUB_INSTALLATION_ID",
    "GITHUB_APIKEY",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "GITHUB_BRANCH",
    "GITHUB_API_URL",
    "MONGODB_URI",
    "REALM_APPID",
    "REALM_APIKEY",
    "DB",
    "APP_COLLECTION",
    "THEME_COLLECTION",
    "SENTRY_DSN",
    "SENTRY_ENVIRONMENT",
    "DLSYNC_STORE_BACKEND",
    "DLSYNC_STORE_BASE_URL",
    "DLSYNC_FAILURE_POLICY",
    "DLSYNC_DRY_RUN",
    "DLSYNC_HTTP_TIMEOUT",
    "DLSYNC_COMMIT_MESSAGE",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real env vars and user config out of every test."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Catalog Fixtures
# ==============================================================================


def make_catalog(collection_field: str, item_field: str, uuids: Iterable[str]) -> dict:
    """Build a catalog document with one entry per uuid, downloads at 0."""
    return {
        collection_field: [
            {item_field: {"uuid": uuid, "name": f"Item {uuid}", "downloads": 0}}
            for uuid in uuids
        ]
    }


def catalog_bytes(document: dict) -> bytes:
    return json.dumps(document, indent=4, ensure_ascii=False).encode("utf-8")


@pytest.fixture
def apps_spec() -> DatasetSpec:
    return DatasetSpec(
        label="Community Apps",
        path="data/community_apps/community_apps.json",
        collection_field="apps",
        item_field="app",
        store_collection="apps",
    )


@pytest.fixture
def themes_spec() -> DatasetSpec:
    return DatasetSpec(
        label="Community Themes",
        path="data/community_themes/community_themes.json",
        collection_field="themes",
        item_field="theme",
        store_collection="themes",
    )


@pytest.fixture
def config(apps_spec, themes_spec) -> DlsyncConfig:
    """Config with a static token and an App Services store."""
    return DlsyncConfig(
        github=GitHubConfig(token="ghs_test", max_retries=0),
        store=StoreConfig(app_id="app-1", api_key="key-1", database="droptop"),
        datasets={DatasetKind.APPS: apps_spec, DatasetKind.THEMES: themes_spec},
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(token="ghs_test")


# ==============================================================================
# Store and Sink Fakes
# ==============================================================================


class InMemoryCountStore:
    """Count store serving rows from a dict of collection -> rows."""

    def __init__(
        self,
        rows: Mapping[str, list[dict[str, Any]]] | None = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.rows = dict(rows or {})
        self.failing = set(failing)
        self.reads: list[str] = []
        self.entered = False
        self.exited = False

    def __enter__(self) -> "InMemoryCountStore":
        self.entered = True
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.exited = True

    def read_all(self, collection: str) -> list[Mapping[str, Any]]:
        self.reads.append(collection)
        if collection in self.failing:
            raise StoreError(f"Failed to read {collection}", collection=collection)
        return list(self.rows.get(collection, []))


class RecordingSink:
    """Error sink that remembers what it was given."""

    def __init__(self) -> None:
        self.captured: list[tuple[BaseException, dict[str, str]]] = []
        self.flushed = 0

    def capture(self, error: BaseException, **tags: str) -> None:
        self.captured.append((error, tags))

    def flush(self) -> None:
        self.flushed += 1


class StaticProvider:
    """Credential provider returning a fixed credential (or raising)."""

    def __init__(self, credential: Credential | None = None, error: Exception | None = None):
        self.credential = credential or Credential(token="ghs_test")
        self.error = error
        self.calls = 0

    def obtain(self) -> Credential:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.credential


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


# ==============================================================================
# Stub GitHub Repository
# ==============================================================================


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


class StubRepository:
    """
    In-memory GitHub contents API.

    Rejects updates whose ``sha`` does not match the current blob SHA with a
    409, as GitHub does.
    """

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_get: dict[str, int] = {}
        self.fail_put: dict[str, int] = {}

    def put_file(self, path: str, content: bytes) -> str:
        self.files[path] = content
        return blob_sha(content)

    def sha(self, path: str) -> str:
        return blob_sha(self.files[path])

    def puts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(CONTENTS_PREFIX):]

        if request.method == "GET":
            if path in self.fail_get:
                return httpx.Response(self.fail_get[path], json={"message": "Server Error"})
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            content = self.files[path]
            encoded = base64.encodebytes(content).decode("ascii")
            return httpx.Response(
                200,
                json={"content": encoded, "encoding": "base64", "sha": blob_sha(content)},
            )

        if request.method == "PUT":
            if path in self.fail_put:
                return httpx.Response(self.fail_put[path], json={"message": "Server Error"})
            body = json.loads(request.content)
            if path in self.files and body.get("sha") != self.sha(path):
                return httpx.Response(
                    409,
                    json={"message": f"{path} does not match {body.get('sha')}"},
                )
            content = base64.b64decode(body["content"])
            self.files[path] = content
            return httpx.Response(
                200,
                json={
                    "content": {"path": path, "sha": blob_sha(content)},
                    "commit": {"sha": blob_sha(b"commit" + content), "message": body["message"]},
                },
            )

        return httpx.Response(405)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def repository() -> StubRepository:
    return StubRepository()


@pytest.fixture
def contents(repository, config) -> ContentsClient:
    return ContentsClient.from_config(config.github, client=repository.client())
