"""Tests for GitHub credential providers."""

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from dlsync.core.config.models import GitHubConfig
from dlsync.core.exceptions import AuthError, ConfigError
from dlsync.core.github.auth import (
    JWT_LIFETIME_SECONDS,
    GitHubAppCredentialProvider,
    StaticTokenProvider,
    build_credential_provider,
    read_private_key,
)


@pytest.fixture(scope="module")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def private_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


class StubAppApi:
    """Serves /app/installations and the access token exchange."""

    def __init__(self, installations=None, list_status=200, token_status=201):
        self.installations = [{"id": 42}] if installations is None else installations
        self.list_status = list_status
        self.token_status = token_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path == "/app/installations":
            return httpx.Response(self.list_status, json=self.installations)
        if request.method == "POST" and request.url.path.endswith("/access_tokens"):
            return httpx.Response(
                self.token_status,
                json={"token": "ghs_installation", "expires_at": "2030-01-01T00:00:00Z"},
            )
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


def make_provider(private_pem: str, api: StubAppApi, **kwargs) -> GitHubAppCredentialProvider:
    return GitHubAppCredentialProvider(
        "12345",
        private_pem,
        max_retries=0,
        client=api.client(),
        **kwargs,
    )


class TestAssertion:
    """Tests for the signed app JWT."""

    def test_claims_and_lifetime(self, private_pem, rsa_key) -> None:
        provider = make_provider(private_pem, StubAppApi())

        token = provider.create_assertion()
        claims = jwt.decode(token, rsa_key.public_key(), algorithms=["RS256"])

        assert claims["iss"] == "12345"
        assert claims["exp"] - claims["iat"] == JWT_LIFETIME_SECONDS
        assert JWT_LIFETIME_SECONDS <= 600

    def test_invalid_key_raises_auth_error(self) -> None:
        provider = GitHubAppCredentialProvider("12345", "not a pem key")
        with pytest.raises(AuthError, match="Failed to sign"):
            provider.create_assertion()


class TestObtain:
    """Tests for the installation token exchange."""

    def test_exchanges_first_installation(self, private_pem) -> None:
        api = StubAppApi(installations=[{"id": 42}, {"id": 7}])
        credential = make_provider(private_pem, api).obtain()

        assert credential.token == "ghs_installation"
        assert credential.expires_at is not None
        assert api.requests[1].url.path == "/app/installations/42/access_tokens"
        assert api.requests[0].headers["Authorization"].startswith("Bearer ey")

    def test_configured_installation_skips_listing(self, private_pem) -> None:
        api = StubAppApi()
        make_provider(private_pem, api, installation_id=99).obtain()

        assert len(api.requests) == 1
        assert api.requests[0].url.path == "/app/installations/99/access_tokens"

    def test_no_installations(self, private_pem) -> None:
        with pytest.raises(AuthError, match="no installations"):
            make_provider(private_pem, StubAppApi(installations=[])).obtain()

    @pytest.mark.parametrize("installation_id", [None, "abc", {"nested": 1}])
    def test_malformed_installation_id(self, private_pem, installation_id) -> None:
        api = StubAppApi(installations=[{"id": installation_id}])
        with pytest.raises(AuthError, match="invalid id"):
            make_provider(private_pem, api).obtain()
        assert len(api.requests) == 1

    def test_listing_failure(self, private_pem) -> None:
        with pytest.raises(AuthError, match="HTTP 401") as exc_info:
            make_provider(private_pem, StubAppApi(list_status=401)).obtain()
        assert exc_info.value.context["status_code"] == 401

    def test_token_exchange_failure(self, private_pem) -> None:
        with pytest.raises(AuthError, match="Token exchange failed with HTTP 403"):
            make_provider(private_pem, StubAppApi(token_status=403)).obtain()

    def test_token_is_hidden_from_repr(self, private_pem) -> None:
        credential = make_provider(private_pem, StubAppApi()).obtain()
        assert "ghs_installation" not in repr(credential)


class TestStaticToken:
    """Tests for StaticTokenProvider."""

    def test_returns_token(self) -> None:
        assert StaticTokenProvider("ghp_abc").obtain().token == "ghp_abc"

    def test_empty_token(self) -> None:
        with pytest.raises(AuthError):
            StaticTokenProvider("").obtain()


class TestBuildCredentialProvider:
    """Tests for provider selection from config."""

    def test_token_wins(self, private_pem) -> None:
        config = GitHubConfig(token="ghp_abc", app_id="1", private_key=private_pem)
        assert isinstance(build_credential_provider(config), StaticTokenProvider)

    def test_app_settings(self, private_pem) -> None:
        config = GitHubConfig(app_id="1", private_key=private_pem, installation_id=5)
        provider = build_credential_provider(config)
        assert isinstance(provider, GitHubAppCredentialProvider)
        assert provider.installation_id == 5

    def test_nothing_configured(self) -> None:
        with pytest.raises(ConfigError, match="No GitHub credentials"):
            build_credential_provider(GitHubConfig())

    def test_missing_private_key(self) -> None:
        with pytest.raises(ConfigError, match="private key is not configured"):
            build_credential_provider(GitHubConfig(app_id="1"))

    def test_private_key_from_file(self, tmp_path, private_pem) -> None:
        key_file = tmp_path / "app.pem"
        key_file.write_text(private_pem)
        config = GitHubConfig(app_id="1", private_key_path=str(key_file))
        assert read_private_key(config) == private_pem

    def test_escaped_newlines_restored(self, private_pem) -> None:
        escaped = private_pem.replace("\n", "\\n")
        assert read_private_key(GitHubConfig(private_key=escaped)) == private_pem

    def test_unreadable_key_file(self, tmp_path) -> None:
        config = GitHubConfig(app_id="1", private_key_path=str(tmp_path / "missing.pem"))
        with pytest.raises(ConfigError, match="Cannot read"):
            read_private_key(config)
