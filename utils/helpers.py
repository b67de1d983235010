import re
from urllib.parse import urlparse
from typing import List, Optional, Sequence, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')

_WHITESPACE_RE = re.compile(r'\s+')
_BLANK_LINES_RE = re.compile(r'\n\s*\n')


def is_valid_url(url: str) -> bool:
    """Check that a URL is absolute http(s) with a host"""
    if not url or not isinstance(url, str):
        return False

    parsed = urlparse(url)

    if parsed.scheme not in ['http', 'https']:
        return False

    if not parsed.netloc:
        return False

    return True


def extract_domain(url: str) -> Optional[str]:
    """Extract lowercase host from URL"""
    try:
        parsed = urlparse(url)
        return parsed.hostname or None
    except ValueError:
        return None


def strip_www(host: str) -> str:
    host = (host or '').lower()
    return host[4:] if host.startswith('www.') else host


def is_same_site(url: str, base_url: str) -> bool:
    """Check if url lives on base_url's host or one of its subdomains.

    A leading ``www.`` is ignored on both sides.
    """
    host = extract_domain(url)
    base_host = extract_domain(base_url)
    if not host or not base_host:
        return False

    host = strip_www(host)
    base_host = strip_www(base_host)
    return host == base_host or host.endswith('.' + base_host)


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run, newlines included, to a single space"""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(' ', text).strip()


def clean_text(text: str) -> str:
    """Normalize whitespace while keeping paragraph breaks.

    Runs of whitespace inside a paragraph become one space and any number of
    blank lines between paragraphs becomes exactly one.
    """
    if not text:
        return ""

    blocks = _BLANK_LINES_RE.split(text)
    cleaned = [collapse_whitespace(block) for block in blocks]
    return '\n\n'.join(block for block in cleaned if block)


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split a sequence into consecutive lists of at most size items"""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
