"""
Retry policy for transient failures of external backends
"""

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from carevoice.config import Settings
from carevoice.core.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.NetworkError)


def is_transient_error(exception: BaseException) -> bool:
    """True for timeouts, network errors and 5xx responses"""
    if isinstance(exception, RETRYABLE_EXCEPTIONS):
        return True
    return isinstance(exception, httpx.HTTPStatusError) and exception.response.status_code >= 500


def build_retrying(settings: Settings, service: str) -> AsyncRetrying:
    """Returns an AsyncRetrying that re-raises the last error once attempts run out"""
    return AsyncRetrying(
        wait=wait_exponential(multiplier=1, min=settings.retry_wait_min, max=settings.retry_wait_max),
        stop=stop_after_attempt(max(1, settings.max_retries)),
        retry=retry_if_exception(is_transient_error),
        before_sleep=lambda retry_state: logger.warning(
            f"Retrying {service} call, attempt {retry_state.attempt_number}..."
        ),
        reraise=True,
    )
