"""Tests for the GitHub contents API client."""

import base64
import json
from unittest.mock import Mock, patch

import httpx
import pytest

from dlsync.core.exceptions import CommitError, FetchError
from dlsync.core.github.contents import ContentsClient
from dlsync.core.http import API_VERSION

from conftest import catalog_bytes, make_catalog

PATH = "data/community_apps/community_apps.json"


@pytest.fixture
def stored(repository) -> bytes:
    raw = catalog_bytes(make_catalog("apps", "app", ["a1", "a2"]))
    repository.put_file(PATH, raw)
    return raw


class TestFetch:
    """Tests for ContentsClient.fetch."""

    def test_returns_content_and_sha(self, contents, repository, credential, stored) -> None:
        document = contents.fetch(credential, PATH)

        assert document.raw == stored
        assert document.sha == repository.sha(PATH)
        assert document.path == PATH

    def test_sends_required_headers(self, contents, repository, credential, stored) -> None:
        contents.fetch(credential, PATH)

        request = repository.requests[0]
        assert request.url.path == f"/repos/Droptop-Four/GlobalData/contents/{PATH}"
        assert request.headers["Authorization"] == "Bearer ghs_test"
        assert request.headers["X-GitHub-Api-Version"] == API_VERSION
        assert request.headers["User-Agent"] == "update-community-apps-themes-downloads"
        assert request.headers["Accept"] == "application/vnd.github.v3+json"

    def test_branch_is_sent_as_ref(self, repository, credential, stored) -> None:
        client = ContentsClient(
            "https://api.github.com/repos/Droptop-Four/GlobalData/contents/",
            branch="main",
            client=repository.client(),
        )
        client.fetch(credential, PATH)
        assert repository.requests[0].url.params["ref"] == "main"

    def test_not_found_raises_fetch_error(self, contents, credential) -> None:
        with pytest.raises(FetchError, match="HTTP 404: Not Found") as exc_info:
            contents.fetch(credential, PATH)
        assert exc_info.value.context["status_code"] == 404

    @patch("time.sleep")
    def test_server_error_is_retried(self, mock_sleep: Mock, repository, credential, stored):
        contents = ContentsClient(
            "https://api.github.com/repos/Droptop-Four/GlobalData/contents/",
            max_retries=2,
            client=repository.client(),
        )
        repository.fail_get[PATH] = 502

        with pytest.raises(FetchError, match="HTTP 502"):
            contents.fetch(credential, PATH)

        assert len(repository.requests) == 3
        assert mock_sleep.call_count == 2

    def test_response_without_sha(self, credential) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"content": "e30="})
        )
        contents = ContentsClient("https://x/contents/", client=httpx.Client(transport=transport))
        with pytest.raises(FetchError, match="no sha"):
            contents.fetch(credential, PATH)

    def test_large_file_without_inline_content(self, credential) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200, json={"content": "", "encoding": "none", "sha": "abc"}
            )
        )
        contents = ContentsClient("https://x/contents/", client=httpx.Client(transport=transport))
        with pytest.raises(FetchError, match="no inline content"):
            contents.fetch(credential, PATH)

    def test_network_error_raises_fetch_error(self, credential) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        contents = ContentsClient(
            "https://x/contents/",
            max_retries=0,
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        with pytest.raises(FetchError, match="Connection refused"):
            contents.fetch(credential, PATH)


class TestCommit:
    """Tests for ContentsClient.commit."""

    def test_commit_with_fetched_sha_succeeds(
        self, contents, repository, credential, stored
    ) -> None:
        document = contents.fetch(credential, PATH)
        new_raw = stored.replace(b'"downloads": 0', b'"downloads": 5')

        result = contents.commit(credential, PATH, new_raw, document.sha, "Update download numbers")

        assert repository.files[PATH] == new_raw
        assert result.sha == repository.sha(PATH)
        assert result.commit_sha
        body = json.loads(repository.puts()[0].content)
        assert body["sha"] == document.sha
        assert body["message"] == "Update download numbers"
        assert base64.b64decode(body["content"]) == new_raw
        assert "branch" not in body

    def test_commit_with_stale_sha_is_rejected(
        self, contents, repository, credential, stored
    ) -> None:
        """A concurrent edit between fetch and commit makes the commit fail."""
        document = contents.fetch(credential, PATH)
        repository.put_file(PATH, stored + b"\n")

        with pytest.raises(CommitError) as exc_info:
            contents.commit(credential, PATH, b"{}", document.sha, "msg")

        assert exc_info.value.status_code == 409
        assert exc_info.value.is_conflict
        assert repository.files[PATH] == stored + b"\n"

    def test_commit_is_not_retried(self, contents, repository, credential, stored) -> None:
        document = contents.fetch(credential, PATH)
        repository.fail_put[PATH] = 503

        with pytest.raises(CommitError, match="HTTP 503"):
            contents.commit(credential, PATH, b"{}", document.sha, "msg")

        assert len(repository.puts()) == 1

    def test_commit_sends_branch(self, repository, credential, stored) -> None:
        contents = ContentsClient(
            "https://api.github.com/repos/Droptop-Four/GlobalData/contents/",
            branch="data",
            client=repository.client(),
        )
        contents.commit(credential, PATH, b"{}", repository.sha(PATH), "msg")
        assert json.loads(repository.puts()[0].content)["branch"] == "data"
