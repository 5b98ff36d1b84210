"""
Custom exceptions for dlsync.

This module defines a hierarchy of exceptions for the download-count sync,
providing structured error handling with context preservation.

Exception Hierarchy:
    SyncError (base)
    ├── ConfigError (missing or invalid configuration)
    ├── AuthError (credential acquisition failures)
    ├── FetchError (document retrieval or decode failures)
    ├── StoreError (backing-store read failures)
    └── CommitError (rejected writes, including version conflicts)

Example:
    >>> from dlsync.core.exceptions import FetchError
    >>> try:
    ...     raise FetchError("HTTP 404 fetching document", path="data/x.json")
    ... except FetchError as e:
    ...     print(f"{e} {e.context}")
"""


class SyncError(Exception):
    """
    Base exception for all dlsync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize an error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class ConfigError(SyncError):
    """Raised when configuration is missing or invalid."""


class AuthError(SyncError):
    """
    Exception for credential acquisition failures.

    Raised when the app assertion cannot be signed, when the installation
    lookup or token exchange returns a non-success status, or when the
    app has no installations. Fatal to the whole run.
    """


class FetchError(SyncError):
    """
    Exception for document retrieval failures.

    Raised on non-success HTTP status, malformed API responses, invalid
    base64 content, or content that does not decode to the expected JSON
    shape. Fatal to the dataset kind being processed.
    """


class StoreError(SyncError):
    """
    Exception for backing-store failures.

    Raised when the count store cannot be reached, the query fails, or a
    returned row cannot be interpreted as a ``{uuid, downloads}`` pair.

    Example:
        >>> try:
        ...     collection.find({})
        ... except PyMongoError as e:
        ...     raise StoreError(
        ...         "Failed to read download counts",
        ...         collection="apps",
        ...     ) from e
    """


class CommitError(SyncError):
    """
    Exception for rejected commits.

    Raised when the repository refuses the update, which includes the
    version-token mismatch that signals a concurrent modification. Commits
    are never retried.
    """

    def __init__(self, message: str, status_code: int | None = None, **context: object) -> None:
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code

    @property
    def is_conflict(self) -> bool:
        """True if the repository rejected the write because the document changed."""
        return self.status_code in (409, 422)


__all__ = [
    "SyncError",
    "ConfigError",
    "AuthError",
    "FetchError",
    "StoreError",
    "CommitError",
]
