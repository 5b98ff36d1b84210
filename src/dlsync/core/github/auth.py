"""
Credential providers for the GitHub contents API.

Two ways to authenticate are supported:

- ``GitHubAppCredentialProvider``: signs a short-lived RS256 JWT as the
  GitHub App, looks up the app's installation and exchanges the JWT for an
  installation access token.
- ``StaticTokenProvider``: uses a pre-issued token as-is.

Example:
    >>> provider = build_credential_provider(config.github)
    >>> credential = provider.obtain()
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import httpx
import jwt

from dlsync.core.config.models import GitHubConfig
from dlsync.core.exceptions import AuthError, ConfigError
from dlsync.core.github.models import Credential
from dlsync.core.http import describe_status_error, github_headers, with_retry

logger = logging.getLogger(__name__)

# GitHub rejects app JWTs that live longer than ten minutes
JWT_LIFETIME_SECONDS = 600


class CredentialProvider(Protocol):
    """Anything that can mint a bearer credential for the contents API."""

    def obtain(self) -> Credential: ...


class StaticTokenProvider:
    """Returns a pre-issued token without any exchange."""

    def __init__(self, token: str) -> None:
        self._token = token

    def obtain(self) -> Credential:
        if not self._token:
            raise AuthError("GitHub token is empty")
        return Credential(token=self._token)


class GitHubAppCredentialProvider:
    """
    Installation access tokens for a GitHub App.

    The flow is:
        1. Sign ``{iat, exp = iat + 600, iss = app_id}`` with the app's key
        2. ``GET /app/installations`` and take the first installation
           (skipped when ``installation_id`` is given)
        3. ``POST /app/installations/{id}/access_tokens``

    Args:
        app_id: GitHub App ID, used as the JWT issuer
        private_key: PEM-encoded RSA private key
        api_url: GitHub REST API base URL
        installation_id: Installation to use instead of the first listed one
        user_agent: User-Agent header value
        timeout: HTTP timeout in seconds
        max_retries: Retries for the installation listing on transient errors
        client: Optional preconfigured httpx client (not closed by the provider)
    """

    def __init__(
        self,
        app_id: str,
        private_key: str,
        *,
        api_url: str = "https://api.github.com",
        installation_id: int | None = None,
        user_agent: str = "dlsync",
        timeout: float = 30.0,
        max_retries: int = 2,
        client: httpx.Client | None = None,
    ) -> None:
        self.app_id = app_id
        self._private_key = private_key
        self.api_url = api_url.rstrip("/")
        self.installation_id = installation_id
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    def create_assertion(self, now: int | None = None) -> str:
        """
        Sign the app JWT.

        Raises:
            AuthError: If the key cannot be used to sign
        """
        issued_at = int(time.time()) if now is None else now
        payload = {
            "iat": issued_at,
            "exp": issued_at + JWT_LIFETIME_SECONDS,
            "iss": self.app_id,
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError, NotImplementedError) as e:
            raise AuthError(
                f"Failed to sign GitHub App assertion: {e}", app_id=self.app_id
            ) from e

    def obtain(self) -> Credential:
        """
        Mint an installation access token.

        Raises:
            AuthError: On signing failure, non-success status, or no installations
        """
        assertion = self.create_assertion()
        headers = github_headers(assertion, self.user_agent)

        if self._client is not None:
            return self._exchange(self._client, headers)
        with httpx.Client(timeout=self.timeout) as client:
            return self._exchange(client, headers)

    def _exchange(self, client: httpx.Client, headers: dict[str, str]) -> Credential:
        installation_id = self.installation_id
        if installation_id is None:
            installation_id = self._first_installation(client, headers)

        url = f"{self.api_url}/app/installations/{installation_id}/access_tokens"
        try:
            response = client.post(url, headers=headers)
        except httpx.HTTPError as e:
            raise AuthError(f"Token exchange request failed: {e}", url=url) from e

        if not response.is_success:
            raise AuthError(
                f"Token exchange failed with {describe_status_error(response)}",
                url=url,
                status_code=response.status_code,
            )

        data = _json_object(response, url)
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise AuthError("Token exchange response has no token", url=url)

        logger.debug(f"Obtained installation token for installation {installation_id}")
        return Credential(token=token, expires_at=_parse_expiry(data.get("expires_at")))

    def _first_installation(self, client: httpx.Client, headers: dict[str, str]) -> int:
        url = f"{self.api_url}/app/installations"

        @with_retry(max_retries=self.max_retries)
        def _list() -> httpx.Response:
            response = client.get(url, headers=headers)
            response.raise_for_status()
            return response

        try:
            response = _list()
        except httpx.HTTPStatusError as e:
            raise AuthError(
                f"Installation lookup failed with {describe_status_error(e.response)}",
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise AuthError(f"Installation lookup request failed: {e}", url=url) from e

        try:
            installations = response.json()
        except ValueError as e:
            raise AuthError("Installation lookup returned invalid JSON", url=url) from e

        if not isinstance(installations, list) or not installations:
            raise AuthError("GitHub App has no installations", app_id=self.app_id)

        first = installations[0]
        if not isinstance(first, dict) or "id" not in first:
            raise AuthError("Installation entry has no id", url=url)
        try:
            return int(first["id"])
        except (TypeError, ValueError) as e:
            raise AuthError(
                f"Installation entry has an invalid id: {first['id']!r}", url=url
            ) from e


def _json_object(response: httpx.Response, url: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise AuthError("Token exchange returned invalid JSON", url=url) from e
    if not isinstance(data, dict):
        raise AuthError("Token exchange returned an unexpected payload", url=url)
    return data


def _parse_expiry(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable token expiry {value!r}")
        return None


def read_private_key(config: GitHubConfig) -> str:
    """
    Return the configured PEM key, reading ``private_key_path`` if needed.

    Keys passed through environment variables often have their newlines
    escaped as ``\\n``; those are restored.
    """
    if config.private_key:
        return config.private_key.replace("\\n", "\n")
    if config.private_key_path:
        path = Path(config.private_key_path).expanduser()
        try:
            return path.read_text()
        except OSError as e:
            raise ConfigError(f"Cannot read GitHub App private key at {path}: {e}") from e
    raise ConfigError("GitHub App private key is not configured")


def build_credential_provider(config: GitHubConfig) -> CredentialProvider:
    """
    Pick the credential provider for the given configuration.

    A configured ``token`` wins; otherwise ``app_id`` and a private key are
    required.

    Raises:
        ConfigError: If neither a token nor GitHub App settings are configured
    """
    if config.token:
        return StaticTokenProvider(config.token)

    if not config.app_id:
        raise ConfigError(
            "No GitHub credentials configured: set GITHUB_APIKEY, "
            "or GITHUB_APP_ID with GITHUB_PRIVATE_KEY / GITHUB_PRIVATE_KEY_PATH"
        )

    return GitHubAppCredentialProvider(
        config.app_id,
        read_private_key(config),
        api_url=config.api_url,
        installation_id=config.installation_id,
        user_agent=config.user_agent,
        timeout=config.timeout,
        max_retries=config.max_retries,
    )


__all__ = [
    "JWT_LIFETIME_SECONDS",
    "CredentialProvider",
    "StaticTokenProvider",
    "GitHubAppCredentialProvider",
    "build_credential_provider",
    "read_private_key",
]
