"""HTTP access to Hacker News pages."""

import asyncio
import logging
from contextlib import nullcontext
from typing import Optional
from urllib.parse import urljoin

import aiohttp

from hn_tracker.config import ScraperConfig

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A page could not be retrieved. Not retried; the caller decides whether to skip."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PageFetcher:
    """Fetches page bodies over one shared aiohttp session."""

    def __init__(self, config: ScraperConfig, prometheus_exporter=None):
        """
        Initialize the fetcher. The HTTP session is opened on first use.

        Args:
            config: Root URL, user agent and timeout settings
            prometheus_exporter: Optional Prometheus exporter for request timings
        """
        self.config = config
        self.prometheus_exporter = prometheus_exporter
        self._session: Optional[aiohttp.ClientSession] = None

    def resolve(self, link: str = "") -> str:
        """Resolve a link found on a page against the site root."""
        return urljoin(self.config.root_url, link)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.config.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_sec),
            )
        return self._session

    async def fetch(self, url: str) -> str:
        """
        Fetch a page and return its body.

        Raises:
            FetchError: On connection errors, timeouts and non-2xx responses
        """
        session = self._get_session()
        timer = self.prometheus_exporter.time_request() if self.prometheus_exporter else None
        try:
            with timer if timer else nullcontext():
                async with session.get(url) as response:
                    response.raise_for_status()
                    body = await response.text()
        except aiohttp.ClientResponseError as e:
            raise FetchError(url, f"HTTP {e.status}") from e
        except asyncio.TimeoutError as e:
            raise FetchError(url, "timed out") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e)) from e
        logger.debug(f"Fetched {url} ({len(body)} bytes)")
        return body

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
