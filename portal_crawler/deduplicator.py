"""Hash-based deduplication so re-crawled listings never re-ingest content."""

import hashlib
import re
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

BODY_PREFIX_LENGTH = 500

TRACKING_PARAMS = {
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
    'utm_id', 'gclid', 'fbclid', 'mc_cid', 'mc_eid', 'ref', 'ref_src', 'source',
}

_WHITESPACE_RE = re.compile(r'\s+')
_QUOTES_RE = re.compile('["\'‘’‚‛“”„‟′″`´]')
_DASHES_RE = re.compile('[‒–—―−]')


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, collapse whitespace and unify quote and dash variants"""
    if not text:
        return ""
    text = _WHITESPACE_RE.sub(' ', text.lower())
    text = _QUOTES_RE.sub('"', text)
    text = _DASHES_RE.sub('-', text)
    return text.strip()


def fingerprint(title: str, body: Optional[str]) -> str:
    """Stable sha256 of the normalized title and the first 500 normalized body characters"""
    normalized_title = normalize_text(title)
    body_sample = normalize_text(body)[:BODY_PREFIX_LENGTH]
    combined = f"{normalized_title}|{body_sample}"
    return hashlib.sha256(combined.encode('utf-8')).hexdigest()


def canonicalize_url(url: str) -> str:
    """Lowercase, drop tracking params and fragment, strip trailing slashes"""
    if not url:
        return ""
    try:
        parsed = urlparse(url.strip())
        query = urlencode([
            (key, value)
            for key, value in parse_qsl(parsed.query, keep_blank_values=True)
            if key.lower() not in TRACKING_PARAMS
        ])
        normalized = urlunparse(parsed._replace(query=query, fragment=''))
    except ValueError:
        normalized = url.strip()

    return normalized.lower().rstrip('/')


def url_hash(url: str) -> str:
    return hashlib.sha256(canonicalize_url(url).encode('utf-8')).hexdigest()


def extract_signatures(title: str) -> List[str]:
    """Coarse title signature for fuzzy matching: the first five significant words"""
    words = [w for w in normalize_text(title).split(' ') if len(w) > 3]
    return [' '.join(words[:5])]


class Deduplicator:
    """Answers "was this content stored before?" against the document store"""

    def __init__(self, store):
        self.store = store

    async def is_duplicate(self, content_hash: str) -> bool:
        existing = await self.store.lookup_by_fingerprint(content_hash)
        return existing is not None
