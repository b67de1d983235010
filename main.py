import asyncio
import argparse
import json
import logging

from config import config
from portal_crawler import SOURCE_CONFIGS, CrawlOrchestrator, get_source_config
from utils.database import ArticleStore, MemoryStore


def _print_summary(summary) -> None:
    print("Crawl Summary:")
    print(f"  Sources: {summary.succeeded_sources}/{summary.total_sources} succeeded")
    print(f"  Links Discovered: {summary.total_links_discovered}")
    print(f"  New Documents: {summary.total_new_documents}")
    print(f"  Duration: {summary.duration:.1f}s")

    for result in summary.results:
        mark = '✓' if result.success else '✗'
        print(f"  {mark} {result.source}: {result.links_discovered} found, "
              f"{result.documents_fetched} fetched, {result.new_documents} new "
              f"({result.duration:.1f}s)")
        for error in result.errors:
            print(f"      - {error}")


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='News Portal Crawler')
    parser.add_argument('command', choices=['crawl', 'sources', 'stats', 'recent'])
    parser.add_argument('--source', action='append', dest='sources',
                        help='Crawl only this source (name or URL); repeatable')
    parser.add_argument('--dry-run', action='store_true',
                        help='Keep crawled articles in memory instead of the database')
    parser.add_argument('--json', action='store_true', help='Print the crawl summary as JSON')
    parser.add_argument('--limit', type=int, default=20, help='Number of recent articles')
    parser.add_argument('--log-level', default=config.LOG_LEVEL)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.command == 'crawl':
        sources = list(SOURCE_CONFIGS)
        if args.sources:
            sources = []
            for name in args.sources:
                source = get_source_config(name)
                if source is None:
                    print(f"Unknown source: {name}")
                    return 2
                sources.append(source)

        store = MemoryStore() if args.dry_run else ArticleStore()
        async with CrawlOrchestrator(store) as orchestrator:
            summary = await orchestrator.crawl_all(sources)

        if args.json:
            print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
        else:
            _print_summary(summary)

        return 1 if summary.total_sources and summary.succeeded_sources == 0 else 0

    elif args.command == 'sources':
        for source in SOURCE_CONFIGS:
            delay = source.min_delay if source.min_delay is not None else config.DEFAULT_SOURCE_DELAY
            print(f"- {source.name}")
            print(f"  {source.listing_url} (min delay {delay:.1f}s)")

    elif args.command == 'stats':
        stats = await ArticleStore().get_stats()

        print("Store Statistics:")
        print(f"  Total Articles: {stats['total_articles']}")
        print(f"  Added Today: {stats['articles_today']}")
        for row in stats['per_source']:
            print(f"  {row['source']}: {row['count']}")

    elif args.command == 'recent':
        for article in await ArticleStore().get_recent_articles(args.limit):
            print(f"- {article['title']}")
            print(f"  {article['url']} [{article['source']}]")

    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
