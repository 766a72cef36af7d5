"""
Content fetcher: one timed GET against the studio website with browser-like
headers. No retries here; fallback policy lives in StudioEngine.
"""
import asyncio
import logging
from typing import Dict, Optional

import httpx

from config import DEFAULT_USER_AGENT
from errors import FetchTimeoutError, HttpStatusError, NetworkError

logger = logging.getLogger(__name__)


def browser_headers(user_agent: str = DEFAULT_USER_AGENT) -> Dict[str, str]:
    # The site rejects clients that don't look like a browser
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    }


class ContentFetcher:
    """Async HTTP GET returning the document body or raising a FetchError"""

    def __init__(
        self,
        timeout_seconds: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.headers = browser_headers(user_agent)
        self._transport = transport

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.headers,
            timeout=httpx.Timeout(self.timeout_seconds, connect=min(10.0, self.timeout_seconds)),
            follow_redirects=True,
            transport=self._transport,
        )

    async def fetch(self, url: str) -> str:
        logger.info("Fetching %s", url)
        try:
            async with self._create_client() as client:
                resp = await asyncio.wait_for(client.get(url), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeoutError(url, self.timeout_seconds) from e
        except httpx.HTTPError as e:
            raise NetworkError(url, f"{type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise HttpStatusError(url, resp.status_code)

        logger.info("Fetched %s: %s, %d bytes", url, resp.status_code, len(resp.content))
        return resp.text
