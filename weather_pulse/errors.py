"""
Error taxonomy for upstream fetches.

Every transport failure is expressed as a FetchError subclass carrying an
HTTP-like status code. The retry policy only looks at ``retryable``.
"""

from typing import Optional


class ConfigError(ValueError):
    """Invalid configuration value."""


class FetchError(Exception):
    """Base class for all fetch failures."""

    retryable = True
    kind = "unknown"

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message or describe_status(status))
        self.message = message or describe_status(status)
        self.status = status

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status!r}, message={self.message!r})"


class ClientError(FetchError):
    """4xx other than 408/429. The request itself is wrong; retrying won't help."""
    retryable = False
    kind = "client"


class RateLimited(FetchError):
    """429 Too Many Requests."""
    kind = "rate_limited"

    def __init__(
        self,
        message: str = "",
        status: Optional[int] = 429,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status)
        self.retry_after = retry_after


class FetchTimeout(FetchError):
    """408 or a transport-level timeout."""
    kind = "timeout"


class ServerError(FetchError):
    """5xx."""
    kind = "server"


class NetworkError(FetchError):
    """Upstream unreachable (DNS, refused connection, offline)."""
    kind = "network"

    def __init__(self, message: str = "", status: Optional[int] = 0):
        super().__init__(message, status)


class UnknownFetchError(FetchError):
    """Anything that doesn't fit above. Retried, conservatively."""


_STATUS_MESSAGES = {
    0: "No internet connection",
    401: "Invalid API key",
    404: "Location not found",
    429: "Too many requests, try again in a few minutes",
}


def describe_status(status: Optional[int]) -> str:
    """Human-readable message for a status code."""
    if status is None:
        return "Unknown error"
    if status in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status]
    return f"Server error: {status}"


def error_for_status(
    status: int,
    message: str = "",
    retry_after: Optional[float] = None,
) -> FetchError:
    """Build the FetchError subclass matching an HTTP status code."""
    if status == 0:
        return NetworkError(message)
    if status == 408:
        return FetchTimeout(message, status)
    if status == 429:
        return RateLimited(message, status, retry_after=retry_after)
    if 400 <= status < 500:
        return ClientError(message, status)
    if 500 <= status < 600:
        return ServerError(message, status)
    return UnknownFetchError(message, status)
