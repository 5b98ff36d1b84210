"""
Authoritative download-count stores.

Example:
    >>> from dlsync.core.store import load_counts, open_store
    >>> with open_store(config.store) as store:
    ...     counts = load_counts(store, "apps")
"""

from dlsync.core.config.models import StoreConfig
from dlsync.core.exceptions import ConfigError
from dlsync.core.store.app_services import AppServicesCountStore
from dlsync.core.store.base import CountRecord, CountStore, load_counts
from dlsync.core.store.mongo import MongoCountStore


def open_store(config: StoreConfig) -> CountStore:
    """
    Build the count store selected by configuration (not yet entered).

    Raises:
        ConfigError: If the selected backend is missing required settings
    """
    if not config.database:
        raise ConfigError("Store database is not configured (set DB)")

    if config.resolved_backend == "mongodb":
        if not config.uri:
            raise ConfigError("MongoDB store selected but no URI configured (set MONGODB_URI)")
        return MongoCountStore(config.uri, config.database, timeout=config.timeout)

    if not config.app_id or not config.api_key:
        raise ConfigError(
            "App Services store requires an app ID and API key (set REALM_APPID, REALM_APIKEY)"
        )
    return AppServicesCountStore(
        config.app_id,
        config.api_key,
        config.database,
        base_url=config.base_url,
        data_source=config.data_source,
        timeout=config.timeout,
    )


__all__ = [
    "AppServicesCountStore",
    "CountRecord",
    "CountStore",
    "MongoCountStore",
    "load_counts",
    "open_store",
]
