"""
HTTP fetcher built on httpx.

Turns a URL into decoded markup and maps transport failures onto the
ContentCore error taxonomy. No retries are performed.
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from ..config.config import FetchConfig
from ..exceptions import FetchTimeout, NetworkError

logger = structlog.get_logger(__name__)


class HttpFetcher:
    """
    Async HTTP fetcher with a shared connection pool.

    Can be used as an async context manager, or left to create its client
    lazily and closed with ``aclose()``.
    """

    def __init__(self, config: Optional[FetchConfig] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or FetchConfig()
        self._client = client
        self._owns_client = client is None
        self._max_bytes = int(self.config.max_content_size_mb * 1024 * 1024)

    async def __aenter__(self) -> HttpFetcher:
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=self.config.follow_redirects,
                headers={"User-Agent": self.config.user_agent},
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, timeout: float) -> str:
        """
        Fetch ``url`` and return its body as text.

        Args:
            url: Absolute http(s) URL
            timeout: Overall timeout in seconds

        Returns:
            Decoded response body

        Raises:
            FetchTimeout: If the request exceeded ``timeout``
            NetworkError: On transport failure, HTTP status >= 400 or oversized body
        """
        client = self._get_client()
        logger.debug("Fetching", url=url, timeout=timeout)
        try:
            async with client.stream("GET", url, timeout=httpx.Timeout(timeout)) as response:
                if response.status_code >= 400:
                    raise NetworkError(
                        url,
                        f"HTTP {response.status_code} fetching {url}",
                        status_code=response.status_code,
                    )
                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self._max_bytes:
                    raise NetworkError(url, f"Response too large ({declared} bytes): {url}")

                chunks = []
                size = 0
                async for chunk in response.aiter_bytes():
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise NetworkError(url, f"Response exceeded {self._max_bytes} bytes: {url}")
                    chunks.append(chunk)
                body = b"".join(chunks)
                encoding = response.encoding or "utf-8"
        except httpx.TimeoutException as e:
            logger.warning("Fetch timed out", url=url, timeout=timeout)
            raise FetchTimeout(url, timeout) from e
        except httpx.HTTPError as e:
            logger.warning("Fetch failed", url=url, error=str(e), error_type=type(e).__name__)
            raise NetworkError(url, f"Network error fetching {url}: {e}") from e

        logger.debug("Fetched", url=url, status=response.status_code, bytes=len(body))
        return body.decode(encoding, errors="replace")
