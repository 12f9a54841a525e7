"""Mapping of vendor HTTP outcomes onto the adapter error taxonomy.

Status codes:
- 2xx: no error
- 401, 403: credentials rejected (not retryable)
- 408, 504: timeout (retryable)
- 429: rate limited (retryable, honours Retry-After)
- other 5xx: unavailable (retryable, honours Retry-After)
- other 4xx: request rejected (not retryable)
"""

from typing import Optional

import httpx

from pagesync.core.exceptions import (
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimitedError,
    UpstreamRequestError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)


def parse_retry_after(retry_after_header: Optional[str]) -> Optional[float]:
    """Seconds to wait from a ``Retry-After`` header.

    Only the delta-seconds form is used; HTTP-date values and garbage are
    ignored.
    """
    if not retry_after_header:
        return None
    try:
        seconds = float(retry_after_header.strip())
    except (ValueError, TypeError):
        return None
    if seconds < 0:
        return None
    return seconds


def http_error(
    status_code: int,
    retry_after_header: Optional[str] = None,
    service_name: str = "Datasource",
) -> Optional[UpstreamError]:
    """Build the error for a vendor response status, ``None`` for 2xx.

    Args:
        status_code: HTTP status of the vendor response
        retry_after_header: Raw ``Retry-After`` header value, if any
        service_name: Name used in error messages

    Returns:
        The error to raise, or ``None`` if the response was successful
    """
    if 200 <= status_code < 300:
        return None

    retry_after = parse_retry_after(retry_after_header)
    message = f"{service_name} responded with HTTP {status_code}."

    if status_code in (401, 403):
        return UpstreamAuthError(message, status_code=status_code)
    if status_code in (408, 504):
        return UpstreamTimeoutError(message=message)
    if status_code == 429:
        return UpstreamRateLimitedError(message, retry_after=retry_after, status_code=status_code)
    if status_code >= 500:
        return UpstreamUnavailableError(message, retry_after=retry_after, status_code=status_code)
    return UpstreamRequestError(message, status_code=status_code)


def transport_error(
    exception: httpx.RequestError,
    timeout_seconds: Optional[float] = None,
    service_name: str = "Datasource",
) -> UpstreamError:
    """Map an httpx transport failure onto the taxonomy.

    Timeouts of any phase (connect, read, write, pool) become
    ``UpstreamTimeoutError``; every other transport failure is
    ``UpstreamUnavailableError``.
    """
    if isinstance(exception, httpx.TimeoutException):
        return UpstreamTimeoutError(timeout_seconds)
    return UpstreamUnavailableError(
        f"Failed to execute {service_name} request: {type(exception).__name__}: {exception}."
    )
