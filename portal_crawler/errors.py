"""Error taxonomy shared by the fetcher, parser and orchestrator."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    TIMEOUT = "TIMEOUT"
    HTTP_CLIENT_ERROR = "HTTP_CLIENT_ERROR"
    HTTP_RATE_LIMITED = "HTTP_RATE_LIMITED"
    HTTP_SERVER_ERROR = "HTTP_SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARSE_FAILURE = "PARSE_FAILURE"
    NO_RESULTS = "NO_RESULTS"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = {
    ErrorKind.TIMEOUT,
    ErrorKind.HTTP_RATE_LIMITED,
    ErrorKind.HTTP_SERVER_ERROR,
    ErrorKind.NETWORK_ERROR,
}


def classify_status(status: int) -> Optional[ErrorKind]:
    """Map an HTTP status code to an error kind, or None for a 2xx success"""
    if 200 <= status < 300:
        return None
    if status == 429:
        return ErrorKind.HTTP_RATE_LIMITED
    if 400 <= status < 500:
        return ErrorKind.HTTP_CLIENT_ERROR
    # 5xx and anything unexpected (unfollowed 3xx, 1xx) are retried
    return ErrorKind.HTTP_SERVER_ERROR


class CrawlError(Exception):
    """Base class for crawl pipeline errors"""


class FetchError(CrawlError):
    def __init__(self, kind: ErrorKind, message: str, url: Optional[str] = None,
                 status: Optional[int] = None):
        super().__init__(f"[{kind.value}] {message}")
        self.kind = kind
        self.url = url
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class ParseError(CrawlError):
    def __init__(self, code: str, url: Optional[str] = None):
        detail = f" for {url}" if url else ""
        super().__init__(f"[{ErrorKind.PARSE_FAILURE.value}] {code}{detail}")
        self.code = code
        self.url = url
