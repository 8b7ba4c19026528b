"""Async HTML fetcher used by the SEO scorer."""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from reputation.exceptions import FetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible; ReputationAnalyzer/1.0; +https://example.com/bot)"
)


class PageFetcher:
    """Fetch web pages over a shared, lazily created aiohttp session.

    Usage::

        fetcher = PageFetcher(request_timeout=15)
        page = await fetcher.fetch_page("https://example.com")
        await fetcher.close()
    """

    def __init__(
        self,
        request_timeout: float = 15,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        }
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout, headers=self._headers
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_page(self, url: str) -> dict[str, Any]:
        """GET *url* and return its body.

        Returns:
            Dict with ``html``, ``status_code`` and the final ``url``.

        Raises:
            FetchError: On timeout, connection failure or a non-2xx status.
        """
        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    raise FetchError(
                        f"HTTP {resp.status} fetching {url}",
                        url=url,
                        status_code=resp.status,
                    )
                html = await resp.text(errors="replace")
                final_url = str(resp.url)
                status = resp.status
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Timeout fetching {url}", url=url) from exc
        except aiohttp.ClientError as exc:
            raise FetchError(f"Error fetching {url}: {exc}", url=url) from exc

        logger.debug("Fetched %s (%d, %d bytes)", final_url, status, len(html))
        return {"html": html, "status_code": status, "url": final_url}

    async def exists(self, url: str) -> bool:
        """True when *url* answers with a 2xx status.  Never raises."""
        try:
            await self.fetch_page(url)
        except FetchError as exc:
            logger.debug("Probe of %s failed: %s", url, exc)
            return False
        return True
