"""
dlsync - Download-count sync for community catalogs

Reconciles the download counts in the community apps and themes catalogs
kept on GitHub with the authoritative counts held in MongoDB.
"""

__version__ = "1.0.0"

# Re-export core models for convenience
from dlsync.core.catalog.models import DatasetKind
from dlsync.core.config.models import DlsyncConfig

__all__ = ["DatasetKind", "DlsyncConfig", "__version__"]
