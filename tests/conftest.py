import asyncio

import pytest

from portal_crawler.sources import SourceConfig
from utils.database import MemoryStore


class FakeResponse:
    def __init__(self, status, body="", reason=None):
        self.status = status
        self.body = body
        self.reason = reason

    async def text(self, errors="strict"):
        return self.body


class _RequestContext:
    def __init__(self, session, outcome):
        self.session = session
        self.outcome = outcome

    async def __aenter__(self):
        self.session.in_flight += 1
        self.session.max_in_flight = max(self.session.max_in_flight, self.session.in_flight)
        # Yield so concurrent callers can interleave
        await asyncio.sleep(0)
        if isinstance(self.outcome, BaseException):
            self.session.in_flight -= 1
            raise self.outcome
        status, body = self.outcome
        return FakeResponse(status, body)

    async def __aexit__(self, exc_type, exc, tb):
        self.session.in_flight -= 1
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession.

    ``routes`` maps a URL to ``(status, body)``, an exception instance to
    raise, or a list of those consumed one per request (the last one repeats).
    Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.kwargs = []
        self.in_flight = 0
        self.max_in_flight = 0

    def get(self, url, **kwargs):
        self.calls.append(url)
        self.kwargs.append(kwargs)
        return _RequestContext(self, self._next(url))

    def _next(self, url):
        outcome = self.routes.get(url, (404, "not found"))
        if isinstance(outcome, list):
            return outcome.pop(0) if len(outcome) > 1 else outcome[0]
        return outcome

    def count(self, url):
        return self.calls.count(url)


class FakeClock:
    """Monotonic clock whose sleep advances time instantly"""

    def __init__(self, now=1000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


def make_source(name="Test Portal", listing_url="https://news.example.com/market/", **overrides):
    fields = dict(
        name=name,
        listing_url=listing_url,
        link_selectors=("a",),
        title_selectors=("h1.title", "h1"),
        body_selectors=(".content", "article"),
        date_selectors=("time", ".date"),
        remove_selectors=(".ads", "script", "style"),
        min_delay=1.0,
    )
    fields.update(overrides)
    return SourceConfig(**fields)


def listing_html(*hrefs):
    anchors = "\n".join(f'<li><a href="{href}">link</a></li>' for href in hrefs)
    return f"<html><body><ul>{anchors}</ul></body></html>"


def article_html(title, *paragraphs, published="2025-02-03T10:30:00+07:00"):
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return f"""
    <html><body>
      <div class="ads"><p>Promo saham murah hari ini, klik di sini sekarang juga</p></div>
      <h1 class="title">{title}</h1>
      <time datetime="{published}">Senin, 03 Feb 2025</time>
      <div class="content">{body}</div>
      <script>var tracking = "should never show up in the body text";</script>
    </body></html>
    """


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()
