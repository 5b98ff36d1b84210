"""
Data models for GitHub interactions.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """
    Bearer token for the repository contents API.

    Minted once per run and never persisted.
    """

    token: str = Field(repr=False, description="Bearer token")
    expires_at: datetime | None = Field(
        default=None,
        description="When the token stops being accepted, if known",
    )


class VersionedDocument(BaseModel):
    """
    Exact content of a repository file plus the token needed to overwrite it.

    ``sha`` is the blob SHA returned by the same response that produced
    ``raw``. A commit made with any other SHA is rejected by GitHub.
    """

    path: str
    raw: bytes
    sha: str


class CommitResult(BaseModel):
    """Outcome of a successful contents update."""

    path: str
    sha: str = Field(description="Blob SHA of the new content")
    commit_sha: str | None = Field(default=None, description="SHA of the created commit")
    message: str
