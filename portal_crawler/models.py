"""Value objects produced by a crawl run."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple


@dataclass(frozen=True)
class RawDocument:
    """A parsed document page, before dedup decides whether it is stored."""

    url: str
    title: str
    body: Optional[str]
    published_at: Optional[datetime]
    source: str

    def to_record(self, fingerprint: str, url_hash: Optional[str] = None) -> Dict[str, Any]:
        """Build the row handed to the document store"""
        return {
            'url': self.url,
            'title': self.title,
            'content': self.body,
            'source': self.source,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'content_hash': fingerprint,
            'url_hash': url_hash,
            'crawled_at': datetime.now(timezone.utc).isoformat(),
        }


@dataclass(frozen=True)
class CrawlResult:
    source: str
    success: bool
    links_discovered: int
    documents_fetched: int
    new_documents: int
    errors: Tuple[str, ...]
    duration: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['errors'] = list(self.errors)
        return d


@dataclass(frozen=True)
class CrawlSummary:
    total_sources: int
    succeeded_sources: int
    failed_sources: int
    total_links_discovered: int
    total_new_documents: int
    duration: float
    results: Tuple[CrawlResult, ...]

    @classmethod
    def from_results(cls, results: Iterable[CrawlResult], duration: float) -> "CrawlSummary":
        results = tuple(results)
        succeeded = sum(1 for r in results if r.success)
        return cls(
            total_sources=len(results),
            succeeded_sources=succeeded,
            failed_sources=len(results) - succeeded,
            total_links_discovered=sum(r.links_discovered for r in results),
            total_new_documents=sum(r.new_documents for r in results),
            duration=duration,
            results=results,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['results'] = [r.to_dict() for r in self.results]
        return d
