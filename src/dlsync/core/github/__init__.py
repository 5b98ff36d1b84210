"""
GitHub access for dlsync: credentials and the contents API.
"""

from dlsync.core.github.auth import (
    JWT_LIFETIME_SECONDS,
    CredentialProvider,
    GitHubAppCredentialProvider,
    StaticTokenProvider,
    build_credential_provider,
)
from dlsync.core.github.contents import ContentsClient
from dlsync.core.github.models import CommitResult, Credential, VersionedDocument

__all__ = [
    "JWT_LIFETIME_SECONDS",
    "CommitResult",
    "ContentsClient",
    "Credential",
    "CredentialProvider",
    "GitHubAppCredentialProvider",
    "StaticTokenProvider",
    "VersionedDocument",
    "build_credential_provider",
]
