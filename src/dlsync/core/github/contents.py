"""
GitHub contents API client.

Reads a repository file together with its blob SHA and writes it back with an
update conditioned on that SHA. GitHub refuses the update when the file has
changed since the SHA was issued, which is the only concurrency guard this
tool relies on.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dlsync.core.catalog.codec import decode_content, encode_content
from dlsync.core.config.models import GitHubConfig
from dlsync.core.exceptions import CommitError, FetchError
from dlsync.core.github.models import CommitResult, Credential, VersionedDocument
from dlsync.core.http import describe_status_error, github_headers, with_retry

logger = logging.getLogger(__name__)


class ContentsClient:
    """
    Client for ``/repos/{owner}/{repo}/contents/{path}``.

    Use as a context manager so the underlying HTTP connection pool is closed.

    Example:
        >>> with ContentsClient.from_config(config.github) as contents:
        ...     document = contents.fetch(credential, "data/apps.json")
        ...     contents.commit(credential, document.path, new_raw, document.sha, "msg")
    """

    def __init__(
        self,
        base_url: str,
        *,
        branch: str | None = None,
        user_agent: str = "dlsync",
        timeout: float = 30.0,
        max_retries: int = 2,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize ContentsClient.

        Args:
            base_url: Contents API base URL ending with ``/contents/``
            branch: Branch to read from and commit to (default branch if None)
            user_agent: User-Agent header value
            timeout: HTTP timeout in seconds
            max_retries: Retries for fetches on transient errors
            client: Optional preconfigured httpx client (owned by the caller)
        """
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.branch = branch
        self.user_agent = user_agent
        self.max_retries = max_retries
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls, config: GitHubConfig, client: httpx.Client | None = None
    ) -> ContentsClient:
        return cls(
            config.contents_url,
            branch=config.branch,
            user_agent=config.user_agent,
            timeout=config.timeout,
            max_retries=config.max_retries,
            client=client,
        )

    def __enter__(self) -> ContentsClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path.lstrip('/')}"

    def fetch(self, credential: Credential, path: str) -> VersionedDocument:
        """
        Fetch a file and the SHA that must accompany any update to it.

        Args:
            credential: Bearer credential
            path: Path of the file inside the repository

        Returns:
            VersionedDocument with the decoded bytes and blob SHA

        Raises:
            FetchError: On non-success status, malformed response or bad base64
        """
        url = self.url_for(path)
        params = {"ref": self.branch} if self.branch else None
        headers = github_headers(credential.token, self.user_agent)

        @with_retry(max_retries=self.max_retries)
        def _get() -> httpx.Response:
            response = self._client.get(url, headers=headers, params=params)
            response.raise_for_status()
            return response

        try:
            response = _get()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Fetching {path} failed with {describe_status_error(e.response)}",
                path=path,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Fetching {path} failed: {e}", path=path) from e

        data = self._json_object(response, path)
        content = data.get("content")
        sha = data.get("sha")
        if not isinstance(sha, str) or not sha:
            raise FetchError(f"Response for {path} has no sha", path=path)
        if data.get("encoding") == "none" or not isinstance(content, str):
            # Files over 1 MB come back without inline content
            raise FetchError(f"Response for {path} has no inline content", path=path)

        raw = decode_content(content, path)
        logger.debug(f"Fetched {path} ({len(raw)} bytes, sha {sha})")
        return VersionedDocument(path=path, raw=raw, sha=sha)

    def commit(
        self,
        credential: Credential,
        path: str,
        raw: bytes,
        sha: str,
        message: str,
    ) -> CommitResult:
        """
        Overwrite a file, conditioned on the SHA observed at fetch time.

        Never retried: a rejection (including a stale SHA) is final for this run.

        Raises:
            CommitError: If the request fails or GitHub rejects the update
        """
        url = self.url_for(path)
        body: dict[str, Any] = {
            "message": message,
            "content": encode_content(raw),
            "sha": sha,
        }
        if self.branch:
            body["branch"] = self.branch

        headers = github_headers(credential.token, self.user_agent)
        headers["Content-Type"] = "application/json"

        try:
            response = self._client.put(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            raise CommitError(f"Committing {path} failed: {e}", path=path) from e

        if not response.is_success:
            raise CommitError(
                f"Committing {path} was rejected with {describe_status_error(response)}",
                status_code=response.status_code,
                path=path,
                sha=sha,
            )

        data = self._json_object(response, path, error=CommitError)
        content_info = data.get("content") or {}
        commit_info = data.get("commit") or {}
        return CommitResult(
            path=path,
            sha=content_info.get("sha", ""),
            commit_sha=commit_info.get("sha"),
            message=message,
        )

    @staticmethod
    def _json_object(
        response: httpx.Response,
        path: str,
        error: type[FetchError] | type[CommitError] = FetchError,
    ) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise error(f"Response for {path} is not valid JSON", path=path) from e
        if not isinstance(data, dict):
            raise error(f"Response for {path} is not a JSON object", path=path)
        return data


__all__ = ["ContentsClient"]
