import asyncio
import time
import logging
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class DomainRateLimiter:
    """Enforces a minimum spacing between requests to the same host.

    One lock per domain serializes callers for that domain only, so a slow
    host never delays requests to another. The last-dispatch table lives as
    long as the instance, which keeps pacing across consecutive crawl runs.
    Locks belong to the event loop that is running; a new loop starts with
    fresh locks while the dispatch table carries over.
    """

    def __init__(self, default_delay: float = 1.5, *,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.default_delay = max(0.0, default_delay)
        self._clock = clock
        self._sleep = sleep
        self._last_dispatch: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _lock_for(self, domain: str) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._loop = loop
            self._locks = {}

        lock = self._locks.get(domain)
        if lock is None:
            lock = self._locks[domain] = asyncio.Lock()
        return lock

    async def wait_for_domain(self, domain: str, min_delay: Optional[float] = None) -> None:
        """Wait until min_delay has passed since the last request to domain, then claim the slot"""
        delay = self.default_delay if min_delay is None else max(0.0, min_delay)

        async with self._lock_for(domain):
            last = self._last_dispatch.get(domain)
            if last is not None:
                wait_for = last + delay - self._clock()
                if wait_for > 0:
                    logger.debug(f"Pacing {domain}: waiting {wait_for:.2f}s")
                    await self._sleep(wait_for)
            self._last_dispatch[domain] = self._clock()

    def last_dispatch(self, domain: str) -> Optional[float]:
        return self._last_dispatch.get(domain)

    @staticmethod
    def get_domain(url: str) -> str:
        """Host of a URL, or the input itself when it has none"""
        try:
            return urlparse(url).hostname or url
        except ValueError:
            return url
