"""
Retry logic with exponential backoff using tenacity.
"""
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from app.core.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry logic."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    retryable_exceptions: tuple = (ExternalServiceError,)


def is_retryable_error(config: RetryConfig) -> Callable[[BaseException], bool]:
    """
    Build the retry predicate for a config.

    An exception is retried when it is one of the configured types and does
    not declare itself final through ``is_retryable`` (4xx answers, open
    circuit).
    """
    def predicate(exc: BaseException) -> bool:
        return isinstance(exc, config.retryable_exceptions) and getattr(exc, "is_retryable", True)

    return predicate


def create_async_retry_decorator(
    config: Optional[RetryConfig] = None,
    service_name: str = "Unknown Service",
) -> Callable:
    """
    Create a retry decorator for async functions.

    The final exception is re-raised once attempts are exhausted or as soon
    as a non-retryable one is seen.
    """
    config = config or RetryConfig()

    def _before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying failed async operation",
            service=service_name,
            attempt=retry_state.attempt_number,
            max_attempts=config.max_attempts,
            delay=retry_state.next_action.sleep if retry_state.next_action else None,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    return retry(
        stop=stop_after_attempt(config.max_attempts),
        wait=wait_random_exponential(multiplier=config.base_delay, max=config.max_delay),
        retry=retry_if_exception(is_retryable_error(config)),
        before_sleep=_before_sleep,
        reraise=True,
    )
