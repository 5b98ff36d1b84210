"""
Configuration data models for dlsync.

These models define the structure of .dlsync.json and
~/.config/dlsync/config.json, with validation and type safety via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, Field

from dlsync.core.catalog.models import DatasetKind, DatasetSpec

DEFAULT_USER_AGENT = "update-community-apps-themes-downloads"


class GitHubConfig(BaseModel):
    """
    Repository holding the catalog documents, and how to authenticate to it.

    Either ``token`` (a pre-issued token) or ``app_id`` plus a private key
    (GitHub App installation flow) must be set.
    """

    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    owner: str = Field(default="Droptop-Four", description="Repository owner")
    repo: str = Field(default="GlobalData", description="Repository name")
    branch: Optional[str] = Field(
        default=None,
        description="Branch to read and commit to (repository default if unset)",
    )
    app_id: Optional[str] = Field(default=None, description="GitHub App ID (JWT issuer)")
    private_key: Optional[str] = Field(
        default=None,
        repr=False,
        description="PEM-encoded GitHub App private key",
    )
    private_key_path: Optional[str] = Field(
        default=None,
        description="Path to a PEM file with the GitHub App private key",
    )
    installation_id: Optional[int] = Field(
        default=None,
        description="Installation to use; the first installation is used if unset",
    )
    token: Optional[str] = Field(
        default=None,
        repr=False,
        description="Pre-issued access token; skips the GitHub App exchange",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for idempotent reads on transient errors",
    )

    @property
    def contents_url(self) -> str:
        """Base URL of the repository contents API, ending with a slash."""
        return f"{self.api_url.rstrip('/')}/repos/{self.owner}/{self.repo}/contents/"


class StoreConfig(BaseModel):
    """
    Backing store holding the authoritative download counts.

    ``backend`` selects between a direct MongoDB connection (``mongodb``) and
    MongoDB Atlas App Services with API-key login (``app_services``). When
    unset it is inferred: ``mongodb`` if ``uri`` is set, else ``app_services``.
    """

    backend: Optional[str] = Field(
        default=None,
        pattern="^(mongodb|app_services)$",
        description="Store backend: 'mongodb' or 'app_services'",
    )
    uri: Optional[str] = Field(default=None, repr=False, description="MongoDB connection URI")
    app_id: Optional[str] = Field(default=None, description="App Services application ID")
    api_key: Optional[str] = Field(default=None, repr=False, description="App Services API key")
    base_url: str = Field(
        default="https://services.cloud.mongodb.com",
        description=(
            "App Services base URL; apps deployed to a single region must use "
            "their regional host (for example https://eu-west-1.aws.services.cloud.mongodb.com)"
        ),
    )
    data_source: str = Field(default="mongodb-atlas", description="App Services data source")
    database: str = Field(default="", description="Database holding the count collections")
    timeout: float = Field(default=30.0, gt=0, description="Store timeout in seconds")

    @property
    def resolved_backend(self) -> str:
        if self.backend:
            return self.backend
        return "mongodb" if self.uri else "app_services"


class SentryConfig(BaseModel):
    """Error capture via Sentry. Disabled when ``dsn`` is unset."""

    dsn: Optional[str] = Field(default=None, repr=False, description="Sentry DSN")
    environment: Optional[str] = Field(default=None, description="Sentry environment tag")


def default_datasets() -> dict[DatasetKind, DatasetSpec]:
    return {
        DatasetKind.APPS: DatasetSpec(
            label="Community Apps",
            path="data/community_apps/community_apps.json",
            collection_field="apps",
            item_field="app",
            store_collection="apps",
        ),
        DatasetKind.THEMES: DatasetSpec(
            label="Community Themes",
            path="data/community_themes/community_themes.json",
            collection_field="themes",
            item_field="theme",
            store_collection="themes",
        ),
    }


class DlsyncConfig(BaseModel):
    """
    Main dlsync configuration model.

    Example:
        >>> config = DlsyncConfig(github=GitHubConfig(token="ghs_..."))
        >>> config.failure_policy
        'isolate'
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    sentry: SentryConfig = Field(default_factory=SentryConfig)
    datasets: dict[DatasetKind, DatasetSpec] = Field(
        default_factory=default_datasets,
        description="Dataset kinds to sync, processed in this order",
    )
    failure_policy: str = Field(
        default="isolate",
        pattern="^(isolate|abort)$",
        description="'isolate' runs every kind; 'abort' stops at the first failure",
    )
    commit_message: str = Field(
        default="Update download numbers",
        min_length=1,
        description="Commit message for count updates",
    )
    dry_run: bool = Field(default=False, description="Reconcile without committing")
    skip_unchanged: bool = Field(
        default=True,
        description="Do not commit when the reconciled document is byte-identical",
    )
