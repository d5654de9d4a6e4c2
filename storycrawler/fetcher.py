"""Blocking page fetcher used by a single worker thread.

One GET per call: no retry, no backoff and, unless configured, no timeout.
Any HTTP status is returned to the caller; only transport failures raise.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class PageFetcher:
    """Thin wrapper around a synchronous ``httpx.Client``."""

    def __init__(
        self,
        user_agent: str,
        timeout_sec: Optional[float] = None,
        follow_redirects: bool = True,
        http2: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize page fetcher.

        Args:
            user_agent: User-Agent header sent with every request
            timeout_sec: Per-request timeout, None to wait forever
            follow_redirects: Follow 3xx responses
            http2: Negotiate HTTP/2 (requires the h2 package)
            transport: Optional transport override (tests)
        """
        self.user_agent = user_agent
        self.client = httpx.Client(
            http2=http2,
            timeout=httpx.Timeout(timeout_sec),
            follow_redirects=follow_redirects,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

        # Statistics
        self.total_fetches = 0
        self.failed_fetches = 0
        self.bytes_downloaded = 0

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.BaseTransport] = None) -> 'PageFetcher':
        return cls(
            user_agent=config.user_agent,
            timeout_sec=config.fetch.timeout_sec,
            follow_redirects=config.fetch.follow_redirects,
            http2=config.fetch.http2,
            transport=transport,
        )

    def fetch(self, url: str) -> httpx.Response:
        """GET ``url`` and return the fully read response.

        Raises:
            httpx.HTTPError: connection, DNS, protocol or redirect failure
        """
        self.total_fetches += 1
        try:
            response = self.client.get(url)
        except httpx.HTTPError:
            self.failed_fetches += 1
            raise
        self.bytes_downloaded += len(response.content)
        logger.debug(f"{url} -> {response.status_code} ({len(response.content)} bytes)")
        return response

    def close(self):
        self.client.close()
