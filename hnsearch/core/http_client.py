import asyncio
from typing import Any

import httpx
from loguru import logger


class RateLimitedClient:
    """
    HTTP client with rate limiting and retry logic.

    This class encapsulates httpx.AsyncClient and retries transient failures
    (HTTP 429, 5xx and network errors) with exponential backoff.
    """

    def __init__(
        self,
        rate_limit: int = 0,
        retries: int = 3,
        semaphore_size: int = 10,
        timeout: float = 10.0,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        backoff_base: float = 1.0,
        user_agent: str = "hn-search/1.0",
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the rate-limited HTTP client.

        Args:
            rate_limit: Maximum requests per minute (0 for no limit)
            retries: Number of attempts for a request
            semaphore_size: Maximum number of concurrent requests
            timeout: Request timeout in seconds
            max_connections: Maximum number of connections
            max_keepalive_connections: Maximum number of keepalive connections
            backoff_base: Base delay in seconds, doubled on each failed attempt
            user_agent: User-Agent header value
            headers: Additional headers to include in requests
            transport: Optional httpx transport, used to stub the network
        """
        self.rate_limit = rate_limit
        self.request_delay = 60 / rate_limit if rate_limit > 0 else 0.0
        self.client: httpx.AsyncClient | None = None

        self.retries = max(1, retries)
        self.semaphore = asyncio.Semaphore(semaphore_size)
        self.timeout = timeout
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self.backoff_base = backoff_base
        self.transport = transport

        self.default_headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }
        if headers:
            self.default_headers.update(headers)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with proper configuration."""
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(
                    max_connections=self.max_connections,
                    max_keepalive_connections=self.max_keepalive_connections,
                ),
                headers=self.default_headers,
                transport=self.transport,
            )
        return self.client

    def _backoff(self, attempt: int) -> float:
        return self.backoff_base * (2**attempt)

    async def get_json(self, url: str, retries: int | None = None, headers: dict[str, str] | None = None) -> Any:
        """
        Make HTTP GET request and return the decoded JSON body.

        Note that a literal JSON ``null`` body decodes to None, the same value
        returned when the request failed. Callers that must tell the two apart
        use ``get_with_response``.
        """
        response = await self.get_with_response(url, retries, headers)
        if response is None:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response from {url}: {e}")
            return None

    async def get_with_response(self, url: str, retries: int | None = None, headers: dict[str, str] | None = None) -> httpx.Response | None:
        """
        Make HTTP GET request and return full response with retry logic and rate limiting.

        Args:
            url: URL to request
            retries: Number of attempts (uses instance default if None)
            headers: Additional headers for this request

        Returns:
            HTTP response or None if every attempt failed
        """
        if retries is None:
            retries = self.retries

        client = await self._get_client()

        async with self.semaphore:
            for attempt in range(retries):
                last_attempt = attempt + 1 >= retries
                try:
                    if self.request_delay > 0:
                        await asyncio.sleep(self.request_delay)

                    request_headers = self.default_headers.copy()
                    if headers:
                        request_headers.update(headers)

                    response = await client.get(url, headers=request_headers)
                    response.raise_for_status()
                    return response

                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    logger.warning(f"HTTP error {status_code} for {url}, attempt {attempt + 1}/{retries}")
                    if status_code != 429 and status_code < 500:
                        break  # Don't retry client errors
                    if not last_attempt:
                        await asyncio.sleep(self._backoff(attempt))

                except httpx.RequestError as e:
                    logger.warning(f"Request error for {url}: {e}, attempt {attempt + 1}/{retries}")
                    if not last_attempt:
                        await asyncio.sleep(self._backoff(attempt))

        logger.error(f"Failed to fetch {url} after {retries} attempts")
        return None

    async def close(self):
        """Close the HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
