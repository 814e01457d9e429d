"""
HTTP fetch transport over httpx.

Turns a RequestDescriptor into decoded JSON, or raises the FetchError
subclass matching what went wrong.
"""

import logging
from typing import Any, Optional

import httpx

from .config import PulseConfig
from .errors import FetchError, FetchTimeout, NetworkError, UnknownFetchError, error_for_status
from .types import RequestDescriptor
from .utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class HttpTransport:
    """
    Fetch transport backed by ``httpx.AsyncClient``.

    Usage:
        async with HttpTransport(base_url, api_key="...") as transport:
            data = await transport(RequestDescriptor("/weather", {"q": "London"}))
    """

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        timeout: float = 10.0,
        rate_limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Prefix for relative descriptor URLs
            api_key: Sent as the ``appid`` query parameter when set
            timeout: Per-request timeout in seconds
            rate_limiter: Awaited before every request; disabled when None
            client: Pre-built client (tests, custom transports). Not closed by us.
        """
        self._api_key = api_key
        self._rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter(enabled=False)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_config(cls, config: PulseConfig) -> "HttpTransport":
        limiter = RateLimiter(
            requests_per_minute=config.rate_limit_rpm,
            burst=config.rate_limit_burst,
            enabled=config.rate_limit_enabled,
        )
        return cls(
            base_url=config.api_url,
            api_key=config.api_key,
            timeout=config.request_timeout,
            rate_limiter=limiter,
        )

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def fetch(self, descriptor: RequestDescriptor) -> Any:
        """
        Perform one request.

        Raises:
            NetworkError: Upstream unreachable
            FetchTimeout: 408 or transport timeout
            RateLimited: 429
            ClientError: Other 4xx
            ServerError: 5xx
            UnknownFetchError: Undecodable body or unexpected status
        """
        params = dict(descriptor.params)
        if self._api_key:
            params["appid"] = self._api_key

        waited = await self._rate_limiter.acquire()
        if waited:
            logger.debug(f"Rate limited locally, waited {waited:.2f}s")

        try:
            response = await self._client.request(descriptor.method, descriptor.url, params=params)
        except httpx.TimeoutException as e:
            raise FetchTimeout(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            raise error_for_status(
                response.status_code,
                _error_message(response),
                retry_after=_retry_after(response),
            )
        if response.status_code >= 300:
            raise UnknownFetchError(f"Unexpected status {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UnknownFetchError(f"Invalid JSON body: {e}", response.status_code) from e

    async def __call__(self, descriptor: RequestDescriptor) -> Any:
        return await self.fetch(descriptor)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _error_message(response: httpx.Response) -> str:
    """Prefer the upstream's own ``message`` field, then the status description."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return FetchError(status=response.status_code).message
