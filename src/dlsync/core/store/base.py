"""
Count store protocol and the count index loader.

A count store returns every ``{uuid, downloads}`` row of a collection in one
bulk read. ``load_counts`` turns those rows into the in-memory index used by
the reconciler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from dlsync.core.exceptions import StoreError

logger = logging.getLogger(__name__)


class CountRecord(BaseModel):
    """One authoritative download count."""

    uuid: str = Field(min_length=1)
    downloads: int = Field(ge=0)


class CountStore(Protocol):
    """
    Backing store holding authoritative download counts.

    Implementations are context managers: entering opens the connection or
    session, exiting releases it.
    """

    def read_all(self, collection: str) -> Iterable[Mapping[str, Any]]:
        """Return every row of ``collection``; raise StoreError on failure."""
        ...

    def __enter__(self) -> CountStore: ...

    def __exit__(self, *exc_info: object) -> None: ...


def load_counts(store: CountStore, collection: str) -> dict[str, int]:
    """
    Load the full count index for a collection.

    Duplicate uuids are not expected; if they occur the last row wins.

    Args:
        store: Open count store
        collection: Collection holding the counts

    Returns:
        Mapping of uuid to download count

    Raises:
        StoreError: If the read fails or a row is not a valid count
    """
    counts: dict[str, int] = {}
    for row in store.read_all(collection):
        try:
            record = CountRecord.model_validate(dict(row))
        except (ValidationError, TypeError, ValueError) as e:
            raise StoreError(
                f"Invalid count row in {collection}: {e}",
                collection=collection,
            ) from e
        if record.uuid in counts:
            logger.debug(f"Duplicate uuid {record.uuid} in {collection}, keeping last")
        counts[record.uuid] = record.downloads

    logger.info(f"Loaded {len(counts)} download counts from {collection}")
    return counts


__all__ = ["CountRecord", "CountStore", "load_counts"]
