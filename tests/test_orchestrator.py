import asyncio

from portal_crawler.fetcher import Fetcher
from portal_crawler.orchestrator import CrawlOrchestrator
from portal_crawler.rate_limiter import DomainRateLimiter

from conftest import FakeClock, FakeSession, RecordingSleep, article_html, listing_html, make_source

LISTING = "https://news.example.com/market/"
DOC_1 = "https://news.example.com/read/1"
DOC_2 = "https://news.example.com/read/2"


def make_orchestrator(routes, store, **kwargs):
    session = FakeSession(routes)
    clock = FakeClock()
    fetcher = Fetcher(session, max_retries=kwargs.pop("max_retries", 0),
                      retry_base_delay=0.1, sleep=clock.sleep)
    limiter = DomainRateLimiter(1.0, clock=clock, sleep=clock.sleep)
    group_sleep = RecordingSleep()
    kwargs.setdefault("group_delay", 2.0)
    orchestrator = CrawlOrchestrator(
        store, fetcher=fetcher, rate_limiter=limiter, sleep=group_sleep, **kwargs
    )
    return orchestrator, session, clock, group_sleep


def good_article(n):
    return (200, article_html(
        f"Laporan pasar saham nomor {n} hari ini",
        f"Isi lengkap laporan pasar saham nomor {n} untuk investor.",
    ))


def test_one_good_link_and_one_missing_link(store):
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/2")),
        DOC_1: good_article(1),
        DOC_2: (404, "not found"),
    }
    orchestrator, session, _, _ = make_orchestrator(routes, store)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is True
    assert result.links_discovered == 2
    assert result.documents_fetched == 1
    assert result.new_documents == 1
    assert len(result.errors) == 1
    assert DOC_2 in result.errors[0]
    assert "HTTP_CLIENT_ERROR" in result.errors[0]
    assert session.count(DOC_2) == 1

    record = next(iter(store.records.values()))
    assert record["url"] == DOC_1
    assert record["source"] == "Test Portal"
    assert record["published_at"] == "2025-02-03T10:30:00+07:00"


def test_second_run_stores_nothing_new(store):
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/2")),
        DOC_1: good_article(1),
        DOC_2: good_article(2),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store)
    sources = [make_source()]

    async def run():
        first = await orchestrator.crawl_all(sources)
        second = await orchestrator.crawl_all(sources)
        return first, second

    first, second = asyncio.run(run())

    assert first.total_new_documents == 2
    assert second.total_new_documents == 0
    assert second.results[0].documents_fetched == 2
    assert second.results[0].success is True
    assert len(store.records) == 2


def test_failed_source_does_not_stop_others(store):
    broken = make_source(name="Broken", listing_url="https://broken.example.org/")
    healthy = make_source(name="Healthy")
    routes = {
        "https://broken.example.org/": (503, "unavailable"),
        LISTING: (200, listing_html("/read/1")),
        DOC_1: good_article(1),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store, max_retries=1)

    summary = asyncio.run(orchestrator.crawl_all([broken, healthy]))

    assert summary.total_sources == 2
    assert summary.succeeded_sources == 1
    assert summary.failed_sources == 1
    assert summary.total_new_documents == 1

    by_name = {r.source: r for r in summary.results}
    assert by_name["Broken"].success is False
    assert by_name["Broken"].errors[0].startswith("Listing error: [HTTP_SERVER_ERROR]")
    assert by_name["Healthy"].success is True


def test_empty_listing_is_no_results(store):
    routes = {LISTING: (200, listing_html("/tag/saham", "#top"))}
    orchestrator, _, _, _ = make_orchestrator(routes, store)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is False
    assert result.links_discovered == 0
    assert result.errors == ("[NO_RESULTS] No document links found on listing page",)


def test_links_are_capped_in_document_order(store):
    hrefs = [f"/read/{n}" for n in range(1, 6)]
    routes = {LISTING: (200, listing_html(*hrefs))}
    routes.update({f"https://news.example.com/read/{n}": good_article(n) for n in range(1, 6)})
    orchestrator, session, _, _ = make_orchestrator(routes, store, max_documents_per_source=2)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.links_discovered == 5
    assert result.documents_fetched == 2
    assert session.calls == [LISTING, DOC_1, DOC_2]


def test_parse_failure_is_recorded_and_skipped(store):
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/2")),
        DOC_1: (200, "<html><body><h1>Pendek</h1></body></html>"),
        DOC_2: good_article(2),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is True
    assert result.documents_fetched == 1
    assert result.new_documents == 1
    assert len(result.errors) == 1
    assert "NO_TITLE" in result.errors[0]


def test_source_fails_when_no_document_can_be_retrieved(store):
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/2")),
        DOC_1: (410, "gone"),
        DOC_2: (404, "not found"),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is False
    assert result.documents_fetched == 0
    assert len(result.errors) == 2


def test_requests_to_a_source_are_paced(store):
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/2")),
        DOC_1: good_article(1),
        DOC_2: good_article(2),
    }
    orchestrator, _, clock, _ = make_orchestrator(routes, store)

    asyncio.run(orchestrator.crawl_one(make_source(min_delay=1.5)))

    assert clock.sleeps == [1.5, 1.5]


def test_groups_bound_parallelism_and_pause_between_groups(store):
    sources = [
        make_source(name=f"Portal {n}", listing_url=f"https://portal{n}.example.com/")
        for n in range(5)
    ]
    routes = {}
    for n in range(5):
        routes[f"https://portal{n}.example.com/"] = (200, listing_html("/read/1"))
        routes[f"https://portal{n}.example.com/read/1"] = good_article(n)
    orchestrator, session, _, group_sleep = make_orchestrator(
        routes, store, group_size=2, group_delay=2.0
    )

    summary = asyncio.run(orchestrator.crawl_all(sources))

    assert [r.source for r in summary.results] == [s.name for s in sources]
    assert summary.succeeded_sources == 5
    assert summary.total_new_documents == 5
    assert session.max_in_flight == 2
    assert group_sleep.calls == [2.0, 2.0]


def test_url_attempted_earlier_in_run_is_not_refetched(store):
    first = make_source(name="First")
    second = make_source(name="Second")
    routes = {
        LISTING: (200, listing_html("/read/1", "/read/1?utm_source=home")),
        DOC_1: good_article(1),
    }
    orchestrator, session, _, _ = make_orchestrator(routes, store, group_size=1)

    summary = asyncio.run(orchestrator.crawl_all([first, second]))

    assert session.count(DOC_1) == 1
    skipped = summary.results[1]
    assert skipped.success is True
    assert skipped.documents_fetched == 0
    assert skipped.errors == ()


def test_store_failure_is_a_document_error():
    class FailingStore:
        async def lookup_by_fingerprint(self, content_hash):
            return None

        async def insert_document(self, record):
            raise RuntimeError("disk full")

    routes = {
        LISTING: (200, listing_html("/read/1")),
        DOC_1: good_article(1),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, FailingStore())

    summary = asyncio.run(orchestrator.crawl_all([make_source()]))

    result = summary.results[0]
    assert result.documents_fetched == 1
    assert result.new_documents == 0
    assert result.errors == (f"Document error ({DOC_1}): RuntimeError: disk full",)


def test_summary_to_dict(store):
    routes = {LISTING: (200, listing_html("/read/1")), DOC_1: good_article(1)}
    orchestrator, _, _, _ = make_orchestrator(routes, store)

    data = asyncio.run(orchestrator.crawl_all([make_source()])).to_dict()

    assert data["total_sources"] == 1
    assert data["results"][0]["source"] == "Test Portal"
    assert data["results"][0]["errors"] == []


def test_malformed_href_does_not_sink_the_listing(store):
    routes = {
        LISTING: (200, listing_html("http://[broken/read/9", "/read/1")),
        DOC_1: good_article(1),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store)

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is True
    assert result.links_discovered == 1
    assert result.new_documents == 1
    assert result.errors == ()


def test_insert_ignored_by_store_is_not_counted_as_new():
    class RacingStore:
        async def lookup_by_fingerprint(self, content_hash):
            return None

        async def insert_document(self, record):
            return False

    routes = {LISTING: (200, listing_html("/read/1")), DOC_1: good_article(1)}
    orchestrator, _, _, _ = make_orchestrator(routes, RacingStore())

    result = asyncio.run(orchestrator.crawl_one(make_source()))

    assert result.success is True
    assert result.documents_fetched == 1
    assert result.new_documents == 0
    assert result.errors == ()


def test_same_article_from_two_sources_in_one_group_counts_once(store):
    other = "https://mirror.example.net/"
    routes = {
        LISTING: (200, listing_html("/read/1")),
        DOC_1: good_article(1),
        other: (200, listing_html("/read/1")),
        other + "read/1": good_article(1),
    }
    orchestrator, _, _, _ = make_orchestrator(routes, store, group_size=2)
    sources = [make_source(name="First"), make_source(name="Mirror", listing_url=other)]

    summary = asyncio.run(orchestrator.crawl_all(sources))

    assert summary.total_new_documents == 1
    assert len(store.records) == 1


def test_non_positive_group_size_runs_one_source_at_a_time(store):
    sources = [
        make_source(name=f"Portal {n}", listing_url=f"https://portal{n}.example.com/")
        for n in range(3)
    ]
    routes = {f"https://portal{n}.example.com/": (200, listing_html()) for n in range(3)}
    orchestrator, session, _, group_sleep = make_orchestrator(routes, store, group_size=0)

    summary = asyncio.run(orchestrator.crawl_all(sources))

    assert orchestrator.group_size == 1
    assert summary.total_sources == 3
    assert session.max_in_flight == 1
    assert group_sleep.calls == [2.0, 2.0]


def test_documents_are_paced_by_their_own_host(store):
    listing = "https://www.example.com/news/"
    doc = "https://cdn.example.com/read/6"
    routes = {listing: (200, listing_html(doc)), doc: good_article(6)}
    orchestrator, _, clock, _ = make_orchestrator(routes, store)

    asyncio.run(orchestrator.crawl_one(make_source(listing_url=listing)))

    assert orchestrator.rate_limiter.last_dispatch("www.example.com") is not None
    assert orchestrator.rate_limiter.last_dispatch("cdn.example.com") is not None
    assert clock.sleeps == []
