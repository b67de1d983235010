import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

import aiohttp

from config import config
from portal_crawler.errors import ErrorKind, FetchError, classify_status

logger = logging.getLogger(__name__)


class Fetcher:
    """HTTP GET with an absolute timeout, bounded retries and error classification.

    Client errors (4xx other than 429) are raised on the first attempt. Every
    other failure is retried up to ``max_retries`` more times, sleeping
    ``retry_base_delay * attempt`` between attempts.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, *,
                 timeout: float = None,
                 max_retries: int = None,
                 retry_base_delay: float = None,
                 headers: Optional[Dict[str, str]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.session = session
        self._owns_session = session is None
        self.timeout = config.REQUEST_TIMEOUT if timeout is None else timeout
        self.max_retries = config.MAX_RETRIES if max_retries is None else max(0, max_retries)
        self.retry_base_delay = config.RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay
        self.headers = dict(config.REQUEST_HEADERS if headers is None else headers)
        self._sleep = sleep

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        if self.session is None:
            connector = aiohttp.TCPConnector(limit=100, limit_per_host=4)
            self.session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str, *,
                    timeout: Optional[float] = None,
                    max_retries: Optional[int] = None,
                    retry_base_delay: Optional[float] = None,
                    headers: Optional[Dict[str, str]] = None) -> str:
        """Return the body text of url, or raise the last FetchError observed"""
        if self.session is None:
            raise RuntimeError("Fetcher is not started; use 'async with Fetcher()'")

        timeout = self.timeout if timeout is None else timeout
        retries = self.max_retries if max_retries is None else max(0, max_retries)
        base_delay = self.retry_base_delay if retry_base_delay is None else retry_base_delay
        request_headers = {**self.headers, **(headers or {})}

        attempts = retries + 1
        last_error: Optional[FetchError] = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._get(url, timeout, request_headers)
            except FetchError as e:
                last_error = e
                if not e.retryable:
                    raise

                if attempt < attempts:
                    delay = base_delay * attempt
                    logger.warning(
                        f"Attempt {attempt}/{attempts} failed for {url}: {e}. Retrying in {delay:.1f}s"
                    )
                    await self._sleep(delay)

        logger.error(f"Giving up on {url} after {attempts} attempts: {last_error}")
        raise last_error

    async def _get(self, url: str, timeout: float, headers: Dict[str, str]) -> str:
        """Single request attempt, with every failure mapped onto a FetchError"""
        try:
            async with self.session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:
                kind = classify_status(response.status)
                if kind is None:
                    return await response.text(errors='replace')

                message = f"HTTP {response.status}"
                if getattr(response, 'reason', None):
                    message = f"{message}: {response.reason}"
                raise FetchError(kind, message, url=url, status=response.status)

        except asyncio.TimeoutError:
            raise FetchError(ErrorKind.TIMEOUT, f"Request timed out after {timeout}s", url=url)
        except aiohttp.ClientError as e:
            raise FetchError(ErrorKind.NETWORK_ERROR, f"{type(e).__name__}: {e}", url=url)
