"""Retry utilities for Kubernetes API reads."""

from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from kubegate.core.exceptions import KubernetesError
from kubegate.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Client errors other than these are final: retrying a 404 or 403 will not help.
RETRYABLE_STATUSES = frozenset({409, 429})


def is_transient(error: BaseException) -> bool:
    """Return True if a failed API call is worth repeating.

    Args:
        error: Exception raised by the call

    Returns:
        True for connection failures, throttling and server-side errors
    """
    if not isinstance(error, KubernetesError):
        return False
    if error.status is None:
        return True
    return error.status >= 500 or error.status in RETRYABLE_STATUSES


def retry_on_transient(
    max_attempts: int = 3,
    min_wait: float = 0.2,
    max_wait: float = 2.0,
) -> Callable[[F], F]:
    """Decorator to retry a read on transient Kubernetes API failures.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between attempts (seconds)
        max_wait: Maximum wait time between attempts (seconds)

    Returns:
        Decorated function with retry logic
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        """Log before sleeping between retries."""
        if retry_state.outcome and retry_state.outcome.failed:
            exception = retry_state.outcome.exception()
            logger.warning(
                "retry_attempt",
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                exception=type(exception).__name__,
                message=str(exception),
            )

    return retry(
        retry=retry_if_exception(is_transient),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        before_sleep=before_sleep,
        reraise=True,
    )
