"""
Catalog documents: typed models, JSON codec and count reconciliation.

Example:
    >>> from dlsync.core.catalog import decode_document, reconcile, encode_document
    >>> document = decode_document(raw, spec)
    >>> result = reconcile(document, {"a1": 500})
    >>> encode_document(result.document)
"""

from dlsync.core.catalog.codec import (
    decode_content,
    decode_document,
    encode_content,
    encode_document,
)
from dlsync.core.catalog.models import (
    CatalogDocument,
    DatasetKind,
    DatasetSpec,
    Entry,
    ReconciledDocument,
    Record,
)
from dlsync.core.catalog.reconcile import reconcile

__all__ = [
    "CatalogDocument",
    "DatasetKind",
    "DatasetSpec",
    "Entry",
    "ReconciledDocument",
    "Record",
    "decode_content",
    "decode_document",
    "encode_content",
    "encode_document",
    "reconcile",
]
