"""
Data models for sync runs.

Defines Pydantic models for per-dataset outcomes and the run summary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from dlsync.core.catalog.models import DatasetKind


class DatasetStatus(str, Enum):
    """Outcome of one dataset kind within a run."""

    COMMITTED = "committed"
    UNCHANGED = "unchanged"
    DRY_RUN = "dry_run"
    FAILED = "failed"
    SKIPPED = "skipped"


class DatasetResult(BaseModel):
    """
    What happened to one dataset kind.

    Example:
        >>> DatasetResult(kind=DatasetKind.APPS, status=DatasetStatus.COMMITTED, matched=12)
    """

    kind: DatasetKind
    status: DatasetStatus
    entries: int = Field(default=0, description="Entries in the catalog document")
    matched: int = Field(default=0, description="Entries with a count in the store")
    unmatched: list[str] = Field(
        default_factory=list,
        description="uuids missing from the store, set to 0",
    )
    commit_sha: str | None = Field(default=None, description="SHA of the created commit")
    error: str | None = Field(default=None, description="Error message if the kind failed")
    error_type: str | None = Field(default=None, description="Exception class name")

    @property
    def ok(self) -> bool:
        return self.status in (
            DatasetStatus.COMMITTED,
            DatasetStatus.UNCHANGED,
            DatasetStatus.DRY_RUN,
        )


class RunSummary(BaseModel):
    """Outcome of one orchestration run."""

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    results: list[DatasetResult] = Field(default_factory=list)
    error: str | None = Field(
        default=None,
        description="Run-level failure (credential acquisition, store session)",
    )

    @property
    def ok(self) -> bool:
        return self.error is None and all(result.ok for result in self.results)

    def result_for(self, kind: DatasetKind) -> DatasetResult | None:
        for result in self.results:
            if result.kind == kind:
                return result
        return None
