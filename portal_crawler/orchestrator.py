import asyncio
import time
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from config import config
from portal_crawler.deduplicator import Deduplicator, canonicalize_url, fingerprint, url_hash
from portal_crawler.errors import ErrorKind, FetchError, ParseError
from portal_crawler.fetcher import Fetcher
from portal_crawler.models import CrawlResult, CrawlSummary
from portal_crawler.parser import extract_document, extract_links
from portal_crawler.rate_limiter import DomainRateLimiter
from portal_crawler.sources import SOURCE_CONFIGS, SourceConfig
from utils.helpers import chunked

logger = logging.getLogger(__name__)


class CrawlOrchestrator:
    """Crawls configured sources in bounded groups and aggregates the outcome.

    Sources inside a group run concurrently; each source processes its links
    one at a time (rate-limit, fetch, parse, dedup, persist). Errors never
    escape: documents fail into their source's error list and sources fail
    into their CrawlResult.
    """

    def __init__(self, store, *,
                 fetcher: Optional[Fetcher] = None,
                 rate_limiter: Optional[DomainRateLimiter] = None,
                 max_documents_per_source: int = None,
                 group_size: int = None,
                 group_delay: float = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.store = store
        self.deduplicator = Deduplicator(store)
        self.fetcher = fetcher or Fetcher()
        self.rate_limiter = rate_limiter or DomainRateLimiter(config.DEFAULT_SOURCE_DELAY)
        self.max_documents_per_source = (
            config.MAX_DOCUMENTS_PER_SOURCE if max_documents_per_source is None else max_documents_per_source
        )
        self.group_size = max(1, config.MAX_CONCURRENT_SOURCES if group_size is None else group_size)
        self.group_delay = config.GROUP_DELAY if group_delay is None else group_delay
        self._sleep = sleep

    async def __aenter__(self):
        await self.fetcher.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.fetcher.close()

    async def crawl_all(self, sources: Optional[Sequence[SourceConfig]] = None) -> CrawlSummary:
        """Crawl every source, group by group, and return the run summary"""
        sources = list(SOURCE_CONFIGS if sources is None else sources)

        start_time = time.monotonic()
        logger.info(f"Starting crawl of {len(sources)} sources")

        results: List[CrawlResult] = []
        seen_urls: Set[str] = set()
        groups = chunked(sources, self.group_size)

        for index, group in enumerate(groups):
            outcomes = await asyncio.gather(
                *(self.crawl_one(source, seen_urls=seen_urls) for source in group),
                return_exceptions=True
            )

            for source, outcome in zip(group, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(f"Unexpected failure crawling {source.name}: {outcome}")
                    outcome = CrawlResult(
                        source=source.name, success=False, links_discovered=0,
                        documents_fetched=0, new_documents=0,
                        errors=(f"Source error: {outcome}",), duration=0.0,
                    )
                results.append(outcome)

            if index < len(groups) - 1 and self.group_delay > 0:
                await self._sleep(self.group_delay)

        summary = CrawlSummary.from_results(results, time.monotonic() - start_time)
        logger.info(
            f"Crawl finished: {summary.succeeded_sources}/{summary.total_sources} sources ok, "
            f"{summary.total_new_documents} new documents in {summary.duration:.1f}s"
        )
        return summary

    async def crawl_one(self, source: SourceConfig,
                        seen_urls: Optional[Set[str]] = None) -> CrawlResult:
        """Crawl a single source: listing, then each capped link in order"""
        start_time = time.monotonic()
        seen_urls = set() if seen_urls is None else seen_urls
        errors: List[str] = []
        links_discovered = 0
        documents_fetched = 0
        new_documents = 0

        def finish(success: bool) -> CrawlResult:
            return CrawlResult(
                source=source.name,
                success=success,
                links_discovered=links_discovered,
                documents_fetched=documents_fetched,
                new_documents=new_documents,
                errors=tuple(errors),
                duration=time.monotonic() - start_time,
            )

        logger.info(f"Crawling {source.name}...")

        try:
            await self.rate_limiter.wait_for_domain(source.domain, source.min_delay)
            listing_html = await self.fetcher.fetch(source.listing_url)
            links = extract_links(listing_html, source)
        except FetchError as e:
            logger.error(f"{source.name}: listing fetch failed: {e}")
            errors.append(f"Listing error: {e}")
            return finish(False)
        except Exception as e:
            logger.exception(f"{source.name}: unexpected error on listing page")
            errors.append(f"Source error: {type(e).__name__}: {e}")
            return finish(False)

        links_discovered = len(links)
        logger.info(f"Found {links_discovered} links on {source.name}")

        if not links:
            errors.append(f"[{ErrorKind.NO_RESULTS.value}] No document links found on listing page")
            return finish(False)

        document_errors = 0
        for url in links[:self.max_documents_per_source]:
            canonical = canonicalize_url(url)
            if canonical in seen_urls:
                logger.debug(f"Skipping {url}: already attempted this run")
                continue
            seen_urls.add(canonical)

            try:
                await self.rate_limiter.wait_for_domain(
                    DomainRateLimiter.get_domain(url), source.min_delay
                )
                html = await self.fetcher.fetch(url)
                document = extract_document(html, url, source)
                documents_fetched += 1

                content_hash = fingerprint(document.title, document.body)
                if await self.deduplicator.is_duplicate(content_hash):
                    logger.debug(f"Skipping {url}: content already stored")
                    continue

                record = document.to_record(content_hash, url_hash(url))
                if await self.store.insert_document(record) is False:
                    logger.debug(f"Skipping {url}: stored concurrently by another source")
                    continue
                new_documents += 1

            except (FetchError, ParseError) as e:
                document_errors += 1
                logger.warning(f"{source.name}: {url} failed: {e}")
                errors.append(f"Document error ({url}): {e}")
            except Exception as e:
                document_errors += 1
                logger.exception(f"{source.name}: unexpected error on {url}")
                errors.append(f"Document error ({url}): {type(e).__name__}: {e}")

        success = not (documents_fetched == 0 and document_errors > 0)
        if success:
            logger.info(f"{source.name}: {new_documents} new documents saved")
        else:
            logger.error(f"{source.name}: no document could be retrieved")
        return finish(success)
