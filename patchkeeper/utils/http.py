"""
HTTP client utilities for patchkeeper.

An asynchronous ``httpx`` wrapper used by the registry clients. It adds
retries with exponential backoff, ``429`` handling, an optional minimum
delay between requests and a concurrency cap.
"""

from __future__ import annotations

import time
import httpx
import random
import asyncio
from typing import Any, Dict, Optional, cast

from patchkeeper.utils.logger import get_logger
from patchkeeper.__version__ import __version__
from patchkeeper.exceptions import NetworkError, RegistryError
from patchkeeper.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with retries and concurrency control.

    Args:
        timeout: Request timeout in seconds.
        max_retries: Retries after the first attempt for transient failures.
        rate_limit_delay: Minimum delay (seconds) between requests.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        max_concurrency: Maximum number of requests in flight.

    Example:
        >>> async with HTTPClient() as client:
        ...     doc = await client.get_json("https://pypi.org/pypi/requests/json")
    """

    def __init__(
        self,
        *,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = 0.0,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = 10,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency

        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_429_retries: int = 5

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            )

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limit(self) -> None:
        """Sleep until at least ``rate_limit_delay`` has passed since the last request."""
        if self.rate_limit_delay <= 0:
            return

        async with self._rate_limit_lock:
            now = time.monotonic()
            wait = self.rate_limit_delay - (now - self._last_request_time)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_time = time.monotonic()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request, retrying timeouts, connection errors and 5xx."""
        await self._ensure_client()
        assert self._client is not None

        last_exc: Optional[Exception] = None
        throttled = 0
        attempt = 0

        while attempt <= self.max_retries:
            try:
                await self._rate_limit()
                async with self._semaphore:
                    response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.warning(
                    "Request timeout (%d/%d): %s", attempt + 1, self.max_retries + 1, url
                )
            except httpx.TransportError as exc:
                last_exc = exc
                logger.warning(
                    "Network error (%d/%d): %s", attempt + 1, self.max_retries + 1, exc
                )
            else:
                status = response.status_code
                if status == 429:
                    throttled += 1
                    if throttled > self._max_429_retries:
                        raise NetworkError(
                            f"Rate limit exceeded after {self._max_429_retries} retries",
                            url=url,
                            status_code=429,
                        )
                    retry_after = _retry_after(response)
                    logger.warning(
                        "Rate limited (429), retrying after %ds (%d/%d)",
                        retry_after,
                        throttled,
                        self._max_429_retries,
                    )
                    await asyncio.sleep(retry_after)
                    # Throttling does not consume a retry attempt
                    continue

                if status == 404:
                    raise RegistryError(
                        f"Resource not found: {url}",
                        url=url,
                        status_code=404,
                    )

                if 400 <= status < 500:
                    raise NetworkError(
                        f"HTTP {status} error for {url}",
                        url=url,
                        status_code=status,
                        response_body=response.text,
                    )

                if status < 500:
                    return response

                last_exc = NetworkError(
                    f"HTTP {status} error for {url}", url=url, status_code=status
                )
                logger.warning(
                    "HTTP %d error (%d/%d): %s",
                    status,
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )

            if attempt < self.max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)
            attempt += 1

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {url}",
            url=url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request with retry logic."""
        return await self._send("GET", url.strip(), **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """GET *url* and decode a JSON object body.

        Raises:
            NetworkError: The request failed or the body is not a JSON object.
            RegistryError: The resource does not exist (404).
        """
        response = await self.get(url, **kwargs)

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(data, dict):
            raise NetworkError(
                f"Expected JSON object from {url}",
                url=url,
                response_body=response.text,
            )

        return cast(Dict[str, Any], data)


def _retry_after(response: httpx.Response) -> int:
    """Seconds to wait according to ``Retry-After`` (defaults to 1)."""
    try:
        return max(int(response.headers.get("Retry-After", "1")), 0)
    except ValueError:
        return 1
