"""
Merge authoritative download counts into a catalog document.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping

from dlsync.core.catalog.models import CatalogDocument, ReconciledDocument

logger = logging.getLogger(__name__)


def reconcile(document: CatalogDocument, counts: Mapping[str, int]) -> ReconciledDocument:
    """
    Overwrite every record's ``downloads`` with the count for its ``uuid``.

    Records whose uuid is missing from ``counts`` are set to 0 and logged once
    each. The input document is not modified; entries keep their order and
    every other field is left as-is.

    Args:
        document: Decoded catalog document
        counts: Count index keyed by uuid

    Returns:
        ReconciledDocument holding the updated copy and match statistics
    """
    result = ReconciledDocument(
        document=CatalogDocument(root=copy.deepcopy(document.root), spec=document.spec)
    )

    for entry in result.document.entries:
        record = entry.record
        count = counts.get(record.uuid)
        if count is None:
            logger.warning(
                f"Download number not found for {document.spec.item_field} {record.uuid}"
            )
            record.downloads = 0
            result.unmatched.append(record.uuid)
        else:
            record.downloads = count
            result.matched += 1

    return result


__all__ = ["reconcile"]
