"""
Error capture for scheduled runs.

Nobody watches a scheduled run, so every failure is forwarded to an error
sink exactly once. Sentry is used when a DSN is configured; otherwise the
failure is only logged.
"""

from __future__ import annotations

import logging
from typing import Protocol

import sentry_sdk

from dlsync.core.config.models import SentryConfig
from dlsync.core.exceptions import SyncError

logger = logging.getLogger(__name__)


class ErrorSink(Protocol):
    """Receives failures from a run. Fire-and-forget."""

    def capture(self, error: BaseException, **tags: str) -> None: ...

    def flush(self) -> None: ...


class LoggingErrorSink:
    """Logs failures with their traceback."""

    def capture(self, error: BaseException, **tags: str) -> None:
        context = " ".join(f"{k}={v}" for k, v in sorted(tags.items()))
        logger.error(f"Sync failure {context}: {error}", exc_info=error)

    def flush(self) -> None:
        pass


class SentryErrorSink:
    """
    Sends failures to Sentry.

    Tags (such as the dataset kind) and the error's own context are attached
    to the event scope.
    """

    def __init__(self, dsn: str, environment: str | None = None) -> None:
        sentry_sdk.init(dsn=dsn, environment=environment)

    def capture(self, error: BaseException, **tags: str) -> None:
        with sentry_sdk.new_scope() as scope:
            for key, value in tags.items():
                scope.set_tag(key, value)
            if isinstance(error, SyncError) and error.context:
                scope.set_context("sync_error", {k: str(v) for k, v in error.context.items()})
            sentry_sdk.capture_exception(error)
        logger.debug(f"Reported {type(error).__name__} to Sentry")

    def flush(self) -> None:
        sentry_sdk.flush()


def build_error_sink(config: SentryConfig) -> ErrorSink:
    """Return a Sentry sink when a DSN is configured, else a logging sink."""
    if config.dsn:
        return SentryErrorSink(config.dsn, environment=config.environment)
    return LoggingErrorSink()


__all__ = ["ErrorSink", "LoggingErrorSink", "SentryErrorSink", "build_error_sink"]
