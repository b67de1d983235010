"""Static registry of crawlable news portals.

Each portal is described purely by its listing URL, CSS selector fallback
chains and pacing. Crawl behaviour is identical for every source; only the
selector strings differ.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from utils.helpers import extract_domain, strip_www


@dataclass(frozen=True)
class SourceConfig:
    name: str
    listing_url: str
    link_selectors: Tuple[str, ...]
    title_selectors: Tuple[str, ...]
    body_selectors: Tuple[str, ...]
    date_selectors: Tuple[str, ...] = ()
    remove_selectors: Tuple[str, ...] = ()
    min_delay: Optional[float] = None

    @property
    def domain(self) -> str:
        """Host of the listing page; the rate-limiting key for this source"""
        return urlparse(self.listing_url).hostname or self.listing_url


SOURCE_CONFIGS: Tuple[SourceConfig, ...] = (
    SourceConfig(
        name="CNBC Indonesia",
        listing_url="https://www.cnbcindonesia.com/market/",
        link_selectors=("article a[href*='/market/']", ".list-content a[href*='/market/']"),
        title_selectors=("h1.title", "h1.detail-title", "article h1"),
        body_selectors=(".detail-text", ".detail_text", "article .content"),
        date_selectors=(".date", ".detail-date", "time"),
        remove_selectors=(".ads", ".banner", "script", "style", ".related"),
        min_delay=1.5,
    ),
    SourceConfig(
        name="Bisnis Market",
        listing_url="https://market.bisnis.com/",
        link_selectors=(
            "a[href*='market.bisnis.com/read/']",
            ".list-news a[href*='/read/']",
            ".col-sm-7 a[href*='/read/']",
        ),
        title_selectors=("h1.detail-title", "h1.news-title", ".detail-title h1", "h1"),
        body_selectors=(".detail-content", ".content-detail", ".detail-text", "article"),
        date_selectors=(".date", ".detail-date", "time", ".time"),
        remove_selectors=(".ads", ".banner", "script", "style", ".baca-juga", ".related"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Kabar Bursa",
        listing_url="https://www.kabarbursa.com/market-hari-ini",
        link_selectors=("a[href*='/market-hari-ini/']", ".post-title a"),
        title_selectors=("h1.entry-title", "h1.post-title", "h1"),
        body_selectors=(".entry-content", ".post-content", "article"),
        date_selectors=(".post-date", ".entry-date", "time"),
        remove_selectors=(".ads", "script", "style", ".sharedaddy"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Detik Finance",
        listing_url="https://finance.detik.com/",
        link_selectors=(".list-content a[href*='finance.detik.com']", "article a"),
        title_selectors=("h1.detail__title", ".detail__title", "h1"),
        body_selectors=(".detail__body-text", ".detail__body", ".itp_bodycontent"),
        date_selectors=(".detail__date", ".date"),
        remove_selectors=(".para_ads", ".ads", "script", "style", ".detail__media"),
        min_delay=1.5,
    ),
    SourceConfig(
        name="Katadata Bursa",
        listing_url="https://katadata.co.id/finansial/bursa",
        link_selectors=("a[href*='/finansial/']", ".title a"),
        title_selectors=("h1.title", "h1.detail-title", "h1"),
        body_selectors=(".detail-content", ".content", "article"),
        date_selectors=(".date", "time"),
        remove_selectors=(".ads", "script", "style", ".related"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Kontan Insight",
        listing_url="https://insight.kontan.co.id/",
        link_selectors=("a[href*='insight.kontan.co.id/news/']",),
        title_selectors=("h1.title-article", ".title-detail h1", "h1"),
        body_selectors=(".content-article", ".content-detail", "article"),
        date_selectors=(".date", ".date-article", "time"),
        remove_selectors=(".ads", "script", "style", ".baca-juga"),
        min_delay=1.5,
    ),
    SourceConfig(
        name="Stockbit Snips",
        listing_url="https://snips.stockbit.com/snips-terbaru/",
        link_selectors=(
            "a[href*='/snips-terbaru/-']",
            "a[href*='/investasi/']",
            "a[href*='/market-news/']",
        ),
        title_selectors=("h1.entry-title", "h1[data-content-field='title']"),
        body_selectors=(".sqs-block-content", ".entry-content", "article"),
        date_selectors=(".dt-published", "time.blog-meta-item"),
        remove_selectors=("script", "style", ".share-buttons", ".tags-cats"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Kompas Cuan",
        listing_url="https://money.kompas.com/cuan",
        link_selectors=(
            "a[href*='money.kompas.com/read/']",
            ".article__list a",
            ".latest--news a[href*='/read/']",
        ),
        title_selectors=("h1.read__title", ".read__title h1", "h1"),
        body_selectors=(".read__content", ".content__body", ".read__body", "article"),
        date_selectors=(".read__time", ".read__date", "time", ".date"),
        remove_selectors=(".ads", "script", "style", ".read__more", ".related"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Investor ID",
        listing_url="https://investor.id/market/",
        link_selectors=("a[href*='/market/']",),
        title_selectors=("h1.title", "h1.detail-title", "h1"),
        body_selectors=(".detail-content", ".content-article", "article"),
        date_selectors=(".date", "time"),
        remove_selectors=(".ads", "script", "style", ".related-post"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Bloomberg Technoz",
        listing_url="https://www.bloombergtechnoz.com/kanal/finansial",
        link_selectors=("a[href*='/detail-news/']",),
        title_selectors=("h1.title", "h1.article-title", ".title-detail h1", "h1"),
        body_selectors=(".article-content", ".content-detail", ".detail-content", "article"),
        date_selectors=(".date", ".article-date", "time", ".time-detail"),
        remove_selectors=(".ads", "script", "style", ".related", ".share"),
        min_delay=2.0,
    ),
    SourceConfig(
        name="Bisnis Ekonomi",
        listing_url="https://ekonomi.bisnis.com/",
        link_selectors=("a[href*='ekonomi.bisnis.com/read/']",),
        title_selectors=("h1.detail-title", "h1.news-title", "h1"),
        body_selectors=(".detail-content", ".content-detail", "article"),
        date_selectors=(".date", "time"),
        remove_selectors=(".ads", "script", "style", ".baca-juga"),
        min_delay=1.5,
    ),
    SourceConfig(
        name="Sindo News Bursa",
        listing_url="https://ekbis.sindonews.com/bursa-finansial",
        link_selectors=("a[href*='ekbis.sindonews.com/read/']",),
        title_selectors=("h1.title", "h1.detail-title", "h1"),
        body_selectors=(".detail-content", ".content", "article"),
        date_selectors=(".date", "time"),
        remove_selectors=(".ads", "script", "style", ".baca-juga"),
        min_delay=2.0,
    ),
    # IDN Financials answers crawlers with 403 and is left out.
    SourceConfig(
        name="IDX Channel",
        listing_url="https://www.idxchannel.com/market-news/",
        link_selectors=("a[href*='/market-news/']",),
        title_selectors=("h1.title", "h1.detail-title", "h1"),
        body_selectors=(".detail-content", ".content", "article"),
        date_selectors=(".date", "time"),
        remove_selectors=(".ads", "script", "style", ".related"),
        min_delay=2.0,
    ),
)


def validate_sources(sources: Iterable[SourceConfig]) -> None:
    """Raise ValueError if two sources share a name"""
    seen = set()
    for source in sources:
        if source.name in seen:
            raise ValueError(f"Duplicate source name: {source.name}")
        seen.add(source.name)


def get_source_config(name_or_url: str,
                      sources: Iterable[SourceConfig] = SOURCE_CONFIGS) -> Optional[SourceConfig]:
    """Find a source by exact name, or by the host of a URL belonging to it"""
    sources = tuple(sources)
    for source in sources:
        if source.name == name_or_url:
            return source

    host = extract_domain(name_or_url)
    if not host:
        return None
    host = strip_www(host)
    for source in sources:
        if strip_www(source.domain) == host:
            return source
    return None


def get_source_name(url: str, sources: Iterable[SourceConfig] = SOURCE_CONFIGS) -> str:
    source = get_source_config(url, sources)
    if source:
        return source.name
    return extract_domain(url) or url


validate_sources(SOURCE_CONFIGS)
