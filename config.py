import os
from dataclasses import dataclass, field, fields
from typing import Dict


def _default_headers() -> Dict[str, str]:
    return {
        'User-Agent': (
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
            '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
        ),
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
        'Accept-Language': 'id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7',
    }


@dataclass
class CrawlerConfig:
    """Configuration settings for the portal crawler"""

    # Crawl pacing
    MAX_DOCUMENTS_PER_SOURCE: int = 15
    MAX_CONCURRENT_SOURCES: int = 3
    GROUP_DELAY: float = 2.0
    DEFAULT_SOURCE_DELAY: float = 1.5

    # HTTP settings
    REQUEST_TIMEOUT: float = 15.0
    MAX_RETRIES: int = 2
    RETRY_BASE_DELAY: float = 1.0
    REQUEST_HEADERS: Dict[str, str] = field(default_factory=_default_headers)

    # Database settings
    DATABASE_URL: str = "sqlite:///portal_crawler.db"

    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "CrawlerConfig":
        """Build a config, overriding scalar fields from CRAWLER_<FIELD> variables"""
        environ = os.environ if environ is None else environ
        overrides = {}

        for f in fields(cls):
            if f.type not in (int, float, str, 'int', 'float', 'str'):
                continue
            raw = environ.get(f"CRAWLER_{f.name}")
            if raw is None or raw == '':
                continue

            caster = {'int': int, 'float': float, 'str': str}.get(f.type, f.type)
            try:
                overrides[f.name] = caster(raw)
            except ValueError:
                raise ValueError(f"Invalid value for CRAWLER_{f.name}: {raw!r}")

        return cls(**overrides)

    @property
    def database_path(self) -> str:
        if self.DATABASE_URL.startswith('sqlite:///'):
            return self.DATABASE_URL.replace('sqlite:///', '', 1)
        return 'portal_crawler.db'


# Global configuration instance
config = CrawlerConfig.from_env()
