"""
Retry decorators with exponential backoff using tenacity.

Only transport setup is retried here. A feed cycle that still fails after
these attempts is aborted and picked up again on the next scheduled cycle.
"""

import ftplib
import logging
from typing import Callable, Tuple, Type, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Type variable for generic function decoration
F = TypeVar("F", bound=Callable)

# ftplib.all_errors covers socket errors, EOFError and the ftplib.Error family
FTP_TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = tuple(ftplib.all_errors)


def create_retry_decorator(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exceptions: Tuple[Type[BaseException], ...] = FTP_TRANSIENT_ERRORS,
) -> Callable[[F], F]:
    """
    Create a retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (1 disables retrying)
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on

    Returns:
        Decorator function
    """
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

