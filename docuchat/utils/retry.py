"""
Retry Logic Utilities

Exponential-backoff retry for upstream provider calls. Used on the summary
path only; every other upstream failure is returned to the caller at once.
"""

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)
from docuchat.config import settings
from docuchat.core.exceptions import UpstreamProviderError
import logging

logger = logging.getLogger(__name__)


def is_retryable(error: BaseException) -> bool:
    """Upstream failures are retried unless the provider rejected the request (4xx)"""
    return isinstance(error, UpstreamProviderError) and not error.is_client_error


def backoff_wait():
    """Waits of 1s, 2s, 4s... between attempts"""
    return wait_exponential(
        multiplier=settings.RETRY_INITIAL_DELAY,
        exp_base=settings.RETRY_EXPONENTIAL_BASE,
    )


def retry_on_upstream_error(max_attempts: int = None, wait=None):
    """
    Decorator for retrying coroutine calls on UpstreamProviderError

    Args:
        max_attempts: Total attempts including the first (default settings.RETRY_MAX_ATTEMPTS)
        wait: Tenacity wait strategy (default backoff_wait())

    Returns:
        Tenacity retry decorator; the final error is re-raised unchanged
    """
    return retry(
        stop=stop_after_attempt(max_attempts or settings.RETRY_MAX_ATTEMPTS),
        wait=wait or backoff_wait(),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
