"""
HTTP helpers shared by the GitHub and App Services clients.

Read requests (content fetches, installation listings, store queries) are
retried on transient failures with exponential backoff and jitter. Writes are
never wrapped: a rejected commit surfaces immediately as a ``CommitError``.

Example:
    >>> import httpx
    >>> from dlsync.core.http import with_retry
    >>>
    >>> @with_retry(max_retries=2)
    ... def fetch(client: httpx.Client, url: str) -> httpx.Response:
    ...     response = client.get(url)
    ...     response.raise_for_status()
    ...     return response

Configuration:
    - Default retries: 2 attempts
    - Default base delay: 1.0 seconds
    - Default multiplier: 2.0x per retry
    - Jitter: Random variance of ±20% added to delay
"""

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_VERSION = "2022-11-28"
ACCEPT = "application/vnd.github.v3+json"


class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds before first retry
        multiplier: Exponential backoff multiplier
        jitter: Whether to add jitter to delays
        jitter_ratio: Random variance ratio for jitter (0.2 = ±20%)
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        jitter: bool = True,
        jitter_ratio: float = 0.2,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not 0.0 <= jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.jitter = jitter
        self.jitter_ratio = jitter_ratio

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt (0-indexed).

        delay = base_delay * (multiplier ^ attempt), optionally with jitter.
        """
        delay = self.base_delay * (self.multiplier**attempt)

        if self.jitter:
            variance = delay * self.jitter_ratio
            delay = delay + random.uniform(-variance, variance)

        return max(0.0, delay)


def is_retryable_error(exception: Exception) -> bool:
    """
    Determine if an exception represents a transient, retryable error.

    5xx responses, timeouts and connection errors are retryable. 4xx
    responses (bad credentials, missing documents, stale version tokens)
    and non-HTTP exceptions are not.

    Args:
        exception: Exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    # HTTPStatusError is also an HTTPError, so check it first
    if isinstance(exception, httpx.HTTPStatusError):
        return 500 <= exception.response.status_code < 600

    if isinstance(exception, httpx.TimeoutException):
        return True

    if isinstance(exception, httpx.RequestError):
        return True

    return False


def with_retry(
    max_retries: int = 2,
    base_delay: float = 1.0,
    multiplier: float = 2.0,
    jitter: bool = True,
    jitter_ratio: float = 0.2,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to add retry logic with exponential backoff to a function.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        multiplier: Exponential backoff multiplier
        jitter: Whether to add jitter to delays
        jitter_ratio: Random variance ratio for jitter

    Returns:
        Decorator function that wraps the target function with retry logic
    """
    config = RetryConfig(
        max_retries=max_retries,
        base_delay=base_delay,
        multiplier=multiplier,
        jitter=jitter,
        jitter_ratio=jitter_ratio,
    )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            func_name = getattr(func, "__name__", repr(func))

            for attempt in range(config.max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable_error(e):
                        logger.debug(
                            f"{func_name}: Non-retryable error on attempt {attempt + 1}: {e}"
                        )
                        raise

                    if attempt >= config.max_retries:
                        logger.warning(
                            f"{func_name}: Max retries ({config.max_retries}) exceeded: {e}"
                        )
                        raise

                    delay = config.calculate_delay(attempt)
                    logger.info(
                        f"{func_name}: Retry attempt {attempt + 1}/{config.max_retries} "
                        f"after {delay:.2f}s due to: {e}"
                    )
                    time.sleep(delay)

            # Unreachable: the loop either returns or raises
            raise RuntimeError("Retry loop completed without success or exception")

        return wrapper

    return decorator


def github_headers(token: str, user_agent: str) -> dict[str, str]:
    """Build the headers GitHub requires on every call."""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": ACCEPT,
        "X-GitHub-Api-Version": API_VERSION,
        "User-Agent": user_agent,
    }


def describe_status_error(response: httpx.Response) -> str:
    """Return ``HTTP <code>`` plus the API's ``message`` field when present."""
    detail = ""
    try:
        body = response.json()
        if isinstance(body, dict) and body.get("message"):
            detail = f": {body['message']}"
    except ValueError:
        pass
    return f"HTTP {response.status_code}{detail}"


__all__ = [
    "API_VERSION",
    "ACCEPT",
    "RetryConfig",
    "with_retry",
    "is_retryable_error",
    "github_headers",
    "describe_status_error",
]
