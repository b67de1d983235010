from bs4 import BeautifulSoup, Comment
import re
import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urldefrag, urljoin, urlparse

from dateutil import parser as date_parser

from portal_crawler.errors import ParseError
from portal_crawler.models import RawDocument
from portal_crawler.sources import SourceConfig
from utils.helpers import clean_text, collapse_whitespace, is_same_site, is_valid_url

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 10
MIN_PARAGRAPH_LENGTH = 20
MIN_CONTAINER_LENGTH = 50

# Listing links that never point at a single document
SKIP_URL_PATTERNS = [
    '/tag/', '/tags/',
    '/category/', '/kategori/',
    '/author/', '/penulis/',
    '/page/', '?page=', '&page=',
    '/search',
    '/login', '/register',
]

MONTHS = {
    'januari': 1, 'january': 1, 'jan': 1,
    'februari': 2, 'february': 2, 'feb': 2,
    'maret': 3, 'march': 3, 'mar': 3,
    'april': 4, 'apr': 4,
    'mei': 5, 'may': 5,
    'juni': 6, 'june': 6, 'jun': 6,
    'juli': 7, 'july': 7, 'jul': 7,
    'agustus': 8, 'august': 8, 'agu': 8, 'agt': 8, 'aug': 8,
    'september': 9, 'sept': 9, 'sep': 9,
    'oktober': 10, 'october': 10, 'okt': 10, 'oct': 10,
    'november': 11, 'nov': 11,
    'desember': 12, 'december': 12, 'des': 12, 'dec': 12,
}

_DAY_MONTH_YEAR_RE = re.compile(r'(\d{1,2})\s+([A-Za-z]+)\.?,?\s+(\d{4})')
_ISO_DATE_RE = re.compile(r'\d{4}-\d{2}-\d{2}')


def extract_links(html: str, source: SourceConfig) -> List[str]:
    """Absolute document URLs from a listing page, unique and in document order"""
    soup = BeautifulSoup(html, 'html.parser')
    links: List[str] = []
    seen = set()

    selector = ', '.join(source.link_selectors)
    for anchor in soup.select(selector):
        href = (anchor.get('href') or '').strip()
        if not href or href.startswith('#'):
            continue

        try:
            full_url, _ = urldefrag(urljoin(source.listing_url, href))
        except ValueError:
            logger.debug(f"Skipping malformed href on {source.name}: {href!r}")
            continue

        if full_url in seen:
            continue

        if _is_document_url(full_url, source):
            seen.add(full_url)
            links.append(full_url)

    logger.debug(f"Extracted {len(links)} document links from {source.name} listing")
    return links


def extract_document(html: str, url: str, source: SourceConfig) -> RawDocument:
    """Parse a document page; raises ParseError("NO_TITLE") if no title qualifies"""
    soup = BeautifulSoup(html, 'html.parser')
    _clean_html(soup, source)

    title = _extract_title(soup, source)
    if not title:
        raise ParseError("NO_TITLE", url)

    return RawDocument(
        url=url,
        title=title,
        body=_extract_body(soup, source),
        published_at=_extract_published_at(soup, source),
        source=source.name,
    )


def _is_document_url(url: str, source: SourceConfig) -> bool:
    if not is_valid_url(url):
        return False

    parsed = urlparse(url)
    target = parsed.path + ('?' + parsed.query if parsed.query else '')
    if any(pattern in target.lower() for pattern in SKIP_URL_PATTERNS):
        return False

    return is_same_site(url, source.listing_url)


def _clean_html(soup: BeautifulSoup, source: SourceConfig) -> None:
    """Remove ads, scripts, navigation and comments before extraction"""
    for selector in source.remove_selectors:
        for element in soup.select(selector):
            element.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()


def _extract_title(soup: BeautifulSoup, source: SourceConfig) -> Optional[str]:
    for selector in source.title_selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        title = collapse_whitespace(element.get_text(' '))
        if len(title) > MIN_TITLE_LENGTH:
            return title

    return None


def _extract_body(soup: BeautifulSoup, source: SourceConfig) -> Optional[str]:
    for selector in source.body_selectors:
        container = soup.select_one(selector)
        if container is None:
            continue

        # Strategy 1: paragraph blocks
        paragraphs = []
        for p in container.find_all('p'):
            text = collapse_whitespace(p.get_text(' '))
            if len(text) > MIN_PARAGRAPH_LENGTH:
                paragraphs.append(text)

        if paragraphs:
            return clean_text('\n\n'.join(paragraphs))

        # Strategy 2: whole container text
        full_text = collapse_whitespace(container.get_text(' '))
        if len(full_text) > MIN_CONTAINER_LENGTH:
            return full_text

    return None


def _extract_published_at(soup: BeautifulSoup, source: SourceConfig) -> Optional[datetime]:
    for selector in source.date_selectors:
        element = soup.select_one(selector)
        if element is None:
            continue

        # Machine-readable attribute first
        for attr in ('datetime', 'content'):
            value = element.get(attr)
            if value:
                parsed = _parse_datetime_attr(value)
                if parsed:
                    return parsed

        text = collapse_whitespace(element.get_text(' '))
        if text:
            parsed = parse_localized_date(text)
            if parsed:
                return parsed

    return None


def _parse_datetime_attr(value: str) -> Optional[datetime]:
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    return _as_utc(parsed)


def parse_localized_date(text: str) -> Optional[datetime]:
    """Parse "03 Feb 2025" / "3 Februari 2025" style dates, else a bare YYYY-MM-DD"""
    for match in _DAY_MONTH_YEAR_RE.finditer(text):
        day = int(match.group(1))
        month = MONTHS.get(match.group(2).lower())
        year = int(match.group(3))
        if month is None or day < 1 or year <= 2000:
            continue
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            continue

    iso_match = _ISO_DATE_RE.search(text)
    if iso_match:
        try:
            return _as_utc(datetime.strptime(iso_match.group(0), '%Y-%m-%d'))
        except ValueError:
            return None

    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
