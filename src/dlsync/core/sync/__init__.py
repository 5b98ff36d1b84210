"""
Download-count synchronization runs.

Example:
    >>> from dlsync.core.sync import SyncService
    >>> summary = SyncService(config).run()
    >>> for result in summary.results:
    ...     print(result.kind.value, result.status.value)
"""

from dlsync.core.sync.models import DatasetResult, DatasetStatus, RunSummary
from dlsync.core.sync.service import SyncService

__all__ = [
    "SyncService",
    "DatasetResult",
    "DatasetStatus",
    "RunSummary",
]
