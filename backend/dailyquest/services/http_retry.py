"""Shared retry policy for collaborator HTTP calls."""

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from dailyquest.config import settings

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


def is_transient(exc: BaseException) -> bool:
    """Transport failures and retryable HTTP statuses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


def retrying(max_attempts: int | None = None) -> AsyncRetrying:
    """
    Bounded exponential backoff for transient collaborator failures.

    Reraises the last exception once attempts are exhausted.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts or settings.collaborator_max_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=settings.collaborator_backoff_max_seconds),
        retry=retry_if_exception(is_transient),
        reraise=True,
    )


def describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return str(exc) or exc.__class__.__name__
