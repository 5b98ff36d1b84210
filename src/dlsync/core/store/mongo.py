"""
MongoDB count store backed by pymongo.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from dlsync.core.exceptions import StoreError

logger = logging.getLogger(__name__)

PROJECTION = {"_id": 0, "uuid": 1, "downloads": 1}


class MongoCountStore:
    """
    Reads download counts straight from a MongoDB database.

    Example:
        >>> with MongoCountStore("mongodb+srv://...", "droptop") as store:
        ...     rows = store.read_all("apps")
    """

    def __init__(
        self,
        uri: str,
        database: str,
        *,
        timeout: float = 30.0,
        client: MongoClient | None = None,
    ) -> None:
        self.uri = uri
        self.database = database
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> MongoCountStore:
        if self._client is None:
            timeout_ms = int(self.timeout * 1000)
            try:
                self._client = MongoClient(
                    self.uri,
                    serverSelectionTimeoutMS=timeout_ms,
                    connectTimeoutMS=timeout_ms,
                    socketTimeoutMS=timeout_ms,
                )
            except PyMongoError as e:
                raise StoreError(f"Failed to connect to MongoDB: {e}") from e
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def read_all(self, collection: str) -> list[Mapping[str, Any]]:
        """
        Return every ``{uuid, downloads}`` row of a collection.

        Raises:
            StoreError: If the store is not open or the query fails
        """
        if self._client is None:
            raise StoreError("MongoDB store is not open", collection=collection)
        try:
            cursor = self._client[self.database][collection].find({}, PROJECTION)
            return list(cursor)
        except PyMongoError as e:
            raise StoreError(
                f"Failed to read {self.database}.{collection}: {e}",
                collection=collection,
            ) from e


__all__ = ["MongoCountStore"]
