"""Utility modules for the portal crawler"""

from .database import ArticleStore, DocumentStore, MemoryStore
from .helpers import (
    is_valid_url, extract_domain, strip_www, is_same_site,
    collapse_whitespace, clean_text, chunked
)

__all__ = [
    'ArticleStore', 'DocumentStore', 'MemoryStore',
    'is_valid_url', 'extract_domain', 'strip_www', 'is_same_site',
    'collapse_whitespace', 'clean_text', 'chunked'
]
