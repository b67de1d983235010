import aiosqlite
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
import logging

from config import config

logger = logging.getLogger(__name__)

ARTICLE_COLUMNS = (
    'url', 'title', 'content', 'source', 'published_at',
    'content_hash', 'url_hash', 'crawled_at',
)


class DocumentStore(Protocol):
    """What the crawl pipeline needs from persistence"""

    async def lookup_by_fingerprint(self, content_hash: str) -> Optional[Dict[str, Any]]:
        ...

    async def insert_document(self, record: Dict[str, Any]) -> bool:
        ...


class ArticleStore:
    """SQLite-backed article store keyed by content fingerprint"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.database_path
        self.initialized = False

    async def init_db(self):
        """Initialize database tables"""
        if self.initialized:
            return

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute('''
                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT,
                    source TEXT NOT NULL,
                    published_at TEXT,
                    content_hash TEXT UNIQUE NOT NULL,
                    url_hash TEXT,
                    crawled_at TEXT NOT NULL
                )
            ''')

            await db.execute('CREATE INDEX IF NOT EXISTS idx_articles_url ON articles(url)')
            await db.execute('CREATE INDEX IF NOT EXISTS idx_articles_source ON articles(source)')
            await db.execute('CREATE INDEX IF NOT EXISTS idx_articles_crawled_at ON articles(crawled_at)')

            await db.commit()

        self.initialized = True
        logger.info(f"Article store ready at {self.db_path}")

    async def lookup_by_fingerprint(self, content_hash: str) -> Optional[Dict[str, Any]]:
        await self.init_db()

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f'SELECT {", ".join(ARTICLE_COLUMNS)} FROM articles WHERE content_hash = ?',
                (content_hash,)
            )
            row = await cursor.fetchone()

        return dict(row) if row else None

    async def insert_document(self, record: Dict[str, Any]) -> bool:
        """Insert an article; a repeated fingerprint is ignored. Returns True if a row was added"""
        await self.init_db()

        values = tuple(record.get(column) for column in ARTICLE_COLUMNS)
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                f'INSERT OR IGNORE INTO articles ({", ".join(ARTICLE_COLUMNS)}) '
                f'VALUES ({", ".join("?" for _ in ARTICLE_COLUMNS)})',
                values
            )
            await db.commit()
            inserted = cursor.rowcount > 0

        if inserted:
            logger.debug(f"Saved article: {record['url']}")
        else:
            logger.debug(f"Article already stored: {record['url']}")
        return inserted

    async def get_recent_articles(self, limit: int = 20) -> List[Dict[str, Any]]:
        await self.init_db()

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(f'''
                SELECT {", ".join(ARTICLE_COLUMNS)}
                FROM articles
                ORDER BY crawled_at DESC, id DESC
                LIMIT ?
            ''', (limit,))
            rows = await cursor.fetchall()

        return [dict(row) for row in rows]

    async def get_stats(self) -> Dict[str, Any]:
        """Get article counts: total, added today (UTC) and per source"""
        await self.init_db()

        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute('SELECT COUNT(*) FROM articles')
            total_count = (await cursor.fetchone())[0]

            today = datetime.now(timezone.utc).date().isoformat()
            cursor = await db.execute(
                'SELECT COUNT(*) FROM articles WHERE substr(crawled_at, 1, 10) = ?',
                (today,)
            )
            today_count = (await cursor.fetchone())[0]

            cursor = await db.execute('''
                SELECT source, COUNT(*) AS count
                FROM articles
                GROUP BY source
                ORDER BY count DESC, source
            ''')
            per_source = [{'source': row[0], 'count': row[1]} for row in await cursor.fetchall()]

        return {
            'total_articles': total_count,
            'articles_today': today_count,
            'per_source': per_source,
        }


class MemoryStore:
    """In-process store for dry runs; forgets everything on exit"""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}

    async def lookup_by_fingerprint(self, content_hash: str) -> Optional[Dict[str, Any]]:
        return self.records.get(content_hash)

    async def insert_document(self, record: Dict[str, Any]) -> bool:
        if record['content_hash'] in self.records:
            return False
        self.records[record['content_hash']] = dict(record)
        return True
