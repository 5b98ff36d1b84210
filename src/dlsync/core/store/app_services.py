"""
MongoDB Atlas App Services count store.

Logs in with an application API key, then runs ``find`` through the App
Services function-call endpoint against a linked data source. Responses are
MongoDB Extended JSON and are decoded with ``bson.json_util`` so that
``$numberLong`` counts arrive as exact integers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from bson import json_util
from bson.errors import BSONError

from dlsync.core.exceptions import StoreError
from dlsync.core.http import with_retry
from dlsync.core.store.mongo import PROJECTION

logger = logging.getLogger(__name__)


class AppServicesCountStore:
    """
    Count store reached through the App Services client API.

    Entering the context exchanges the API key for an access token; every
    ``read_all`` reuses that session.

    Args:
        app_id: App Services application ID
        api_key: Application API key
        database: Database holding the count collections
        base_url: App Services base URL
        data_source: Name of the linked MongoDB data source
        timeout: HTTP timeout in seconds
        max_retries: Retries for reads on transient errors
        client: Optional preconfigured httpx client (owned by the caller)
    """

    def __init__(
        self,
        app_id: str,
        api_key: str,
        database: str,
        *,
        base_url: str = "https://services.cloud.mongodb.com",
        data_source: str = "mongodb-atlas",
        timeout: float = 30.0,
        max_retries: int = 2,
        client: httpx.Client | None = None,
    ) -> None:
        self.app_id = app_id
        self._api_key = api_key
        self.database = database
        self.data_source = data_source
        self.max_retries = max_retries
        self.api_root = f"{base_url.rstrip('/')}/api/client/v2.0/app/{app_id}"
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._access_token: str | None = None

    def __enter__(self) -> AppServicesCountStore:
        try:
            self.login()
        except StoreError:
            self.__exit__(None, None, None)
            raise
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._access_token = None
        if self._owns_client:
            self._client.close()

    def login(self) -> None:
        """
        Exchange the API key for a session access token.

        Raises:
            StoreError: If the login request fails or is rejected
        """
        url = f"{self.api_root}/auth/providers/api-key/login"
        try:
            response = self._client.post(url, json={"key": self._api_key})
        except httpx.HTTPError as e:
            raise StoreError(f"App Services login request failed: {e}", app_id=self.app_id) from e

        if not response.is_success:
            raise StoreError(
                f"App Services login failed with HTTP {response.status_code}",
                app_id=self.app_id,
                status_code=response.status_code,
            )

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError) as e:
            raise StoreError("App Services login returned invalid JSON", app_id=self.app_id) from e
        if not token:
            raise StoreError("App Services login returned no access token", app_id=self.app_id)

        self._access_token = token
        logger.debug(f"Logged in to App Services app {self.app_id}")

    def read_all(self, collection: str) -> list[Mapping[str, Any]]:
        """
        Return every ``{uuid, downloads}`` row of a collection.

        Raises:
            StoreError: If not logged in, the call fails, or the reply is malformed
        """
        if self._access_token is None:
            raise StoreError("App Services store is not open", collection=collection)

        url = f"{self.api_root}/functions/call"
        body = {
            "name": "find",
            "service": self.data_source,
            "arguments": [
                {
                    "database": self.database,
                    "collection": collection,
                    "query": {},
                    "project": PROJECTION,
                }
            ],
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}

        @with_retry(max_retries=self.max_retries)
        def _call() -> httpx.Response:
            response = self._client.post(url, json=body, headers=headers)
            response.raise_for_status()
            return response

        try:
            response = _call()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"Reading {collection} failed with HTTP {e.response.status_code}",
                collection=collection,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"Reading {collection} failed: {e}", collection=collection) from e

        try:
            rows = json_util.loads(response.text)
        except (BSONError, ValueError) as e:
            raise StoreError(
                f"Reading {collection} returned invalid Extended JSON",
                collection=collection,
            ) from e

        if not isinstance(rows, list):
            raise StoreError(
                f"Reading {collection} returned {type(rows).__name__}, expected a list",
                collection=collection,
            )
        return rows


__all__ = ["AppServicesCountStore"]
