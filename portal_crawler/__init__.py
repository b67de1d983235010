"""Multi-source news portal crawler with per-domain pacing and fingerprint dedup"""

from .errors import CrawlError, ErrorKind, FetchError, ParseError
from .models import CrawlResult, CrawlSummary, RawDocument
from .sources import SOURCE_CONFIGS, SourceConfig, get_source_config, get_source_name
from .rate_limiter import DomainRateLimiter
from .fetcher import Fetcher
from .parser import extract_document, extract_links
from .deduplicator import Deduplicator, canonicalize_url, extract_signatures, fingerprint, url_hash
from .orchestrator import CrawlOrchestrator

__version__ = "1.0.0"

__all__ = [
    'CrawlError', 'ErrorKind', 'FetchError', 'ParseError',
    'CrawlResult', 'CrawlSummary', 'RawDocument',
    'SOURCE_CONFIGS', 'SourceConfig', 'get_source_config', 'get_source_name',
    'DomainRateLimiter',
    'Fetcher',
    'extract_document', 'extract_links',
    'Deduplicator', 'canonicalize_url', 'extract_signatures', 'fingerprint', 'url_hash',
    'CrawlOrchestrator'
]
