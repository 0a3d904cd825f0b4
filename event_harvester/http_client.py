"""HTTP client with fixed-count, fixed-delay retries."""
import asyncio
import logging
from typing import Optional

import httpx

from . import config
from .errors import FetchFailed
from .models import HarvestOptions

logger = logging.getLogger(__name__)


class RetryingClient:
    """
    Wraps an httpx.AsyncClient with the run's retry policy.

    Every failure (transport error or non-2xx status) is retried after the same
    fixed delay. Once attempts run out the failure is logged and the public
    methods return None so callers can skip the item.
    """

    def __init__(self, client: httpx.AsyncClient, options: HarvestOptions):
        self.client = client
        self.retries = options.http_req_retries
        self.retry_delay = options.http_req_retry_delay / 1000
        self.timeout = httpx.Timeout(options.http_req_timeout / 1000)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        for attempt in range(1, self.retries + 1):
            try:
                response = await self.client.request(method, url, timeout=self.timeout, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                if attempt >= self.retries:
                    raise FetchFailed(url, attempt, e) from e
                logger.debug(f"{method} {url} attempt {attempt}/{self.retries} failed: {type(e).__name__}")
                await asyncio.sleep(self.retry_delay)

    async def get_html(self, url: str) -> Optional[str]:
        """GET a page as text, or None once retries are exhausted."""
        try:
            response = await self._request("GET", url, headers=config.HTML_HEADERS, follow_redirects=True)
        except FetchFailed as e:
            logger.error(f"GET failed: {e}")
            return None
        return response.text

    async def post_form(self, url: str, post_data: str, cookies: str) -> Optional[str]:
        """POST a URL-encoded body with a cookie header, or None once retries are exhausted."""
        headers = {**config.GRAPHQL_HEADERS, "Cookie": cookies}
        try:
            response = await self._request("POST", url, content=post_data.encode(), headers=headers)
        except FetchFailed as e:
            logger.error(f"POST failed: {e}")
            return None
        return response.text
