"""
Crawl configuration.

Values come from explicit arguments or from ``JOBBERMAN_*`` environment
variables (a local ``.env`` file is honoured). Selector cascade overrides are
read from an optional YAML file named by ``JOBBERMAN_SELECTORS_FILE``.
"""
import os
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SEARCH_URL = 'https://www.jobberman.com/jobs'


class PostedWithin(str, Enum):
    anytime = 'anytime'
    last_24h = '24h'
    last_7d = '7d'
    last_30d = '30d'


# Value of the site's ``created_at`` search filter per posted-within window
POSTED_WITHIN_FILTER = {
    PostedWithin.last_24h: '1 day',
    PostedWithin.last_7d: '7 days',
    PostedWithin.last_30d: '30 days',
}


def build_start_url(keyword: str = '', location: str = '',
                    posted_within: PostedWithin = PostedWithin.anytime) -> str:
    """Build the first search-results URL from the search inputs."""
    params = []
    if keyword and keyword.strip():
        params.append(('q', keyword.strip()))
    if location and location.strip():
        params.append(('l', location.strip()))
    created_at = POSTED_WITHIN_FILTER.get(PostedWithin(posted_within))
    if created_at:
        params.append(('created_at', created_at))
    return f"{SEARCH_URL}?{urlencode(params)}" if params else SEARCH_URL


class CrawlConfig(BaseModel):
    keyword: str = ''
    location: str = ''
    posted_within: PostedWithin = PostedWithin.anytime
    target_record_count: int = Field(default=100, ge=1)
    max_pages: int = Field(default=999, ge=1)
    collect_full_details: bool = True
    start_urls: List[str] = Field(default_factory=list)

    # Reference crawler settings
    max_concurrency: int = Field(default=5, ge=1)
    request_timeout: float = Field(default=45.0, gt=0)
    max_retries: int = Field(default=5, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)
    user_agent: Optional[str] = None

    def initial_urls(self) -> List[str]:
        """Explicit start URLs win; otherwise a single search URL is built."""
        urls = [u.strip() for u in self.start_urls if u and u.strip()]
        if urls:
            return urls
        return [build_start_url(self.keyword, self.location, self.posted_within)]

    @property
    def max_requests(self) -> int:
        return max(self.target_record_count * 3, 1000)

    @classmethod
    def from_env(cls, **overrides) -> "CrawlConfig":
        """Build config from ``JOBBERMAN_*`` environment variables."""
        load_dotenv()
        env = {
            'keyword': os.getenv("JOBBERMAN_KEYWORD"),
            'location': os.getenv("JOBBERMAN_LOCATION"),
            'posted_within': os.getenv("JOBBERMAN_POSTED_WITHIN"),
            'target_record_count': os.getenv("JOBBERMAN_RESULTS_WANTED"),
            'max_pages': os.getenv("JOBBERMAN_MAX_PAGES"),
            'collect_full_details': os.getenv("JOBBERMAN_COLLECT_DETAILS"),
            'max_concurrency': os.getenv("JOBBERMAN_MAX_CONCURRENCY"),
            'request_timeout': os.getenv("JOBBERMAN_REQUEST_TIMEOUT"),
            'max_retries': os.getenv("JOBBERMAN_MAX_RETRIES"),
            'user_agent': os.getenv("JOBBERMAN_USER_AGENT"),
        }
        start_urls = os.getenv("JOBBERMAN_START_URLS")
        if start_urls:
            env['start_urls'] = [u for u in start_urls.split(',') if u.strip()]
        values = {k: v for k, v in env.items() if v not in (None, '')}
        values.update(overrides)
        return cls(**values)


# Cache for loaded selector overrides
_selector_cache: Optional[Dict[str, List[str]]] = None


def load_selector_overrides(path: Optional[str] = None) -> Dict[str, List[str]]:
    """
    Load per-field selector lists from YAML.

    The file maps a field name to an ordered list of CSS queries::

        salary_range:
          - "div.job-header [class*='salary' i]"
          - "[class*='salary' i]"

    Missing or malformed files log a warning and yield no overrides.
    """
    global _selector_cache

    if path is None and _selector_cache is not None:
        return _selector_cache

    config_path = path or os.getenv("JOBBERMAN_SELECTORS_FILE")
    overrides: Dict[str, List[str]] = {}
    if config_path:
        file_path = Path(config_path)
        if not file_path.exists():
            logger.warning(f"[config] Selector file not found: {file_path}. Using defaults.")
        else:
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ValueError("top-level YAML value must be a mapping")
                for field_name, queries in data.items():
                    if isinstance(queries, str):
                        queries = [queries]
                    if isinstance(queries, list):
                        overrides[str(field_name)] = [str(q) for q in queries if q]
                logger.info(f"[config] Loaded selector overrides for {sorted(overrides)} from {file_path}")
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error(f"[config] Error loading selector file {file_path}: {e}")
                overrides = {}

    if path is None:
        _selector_cache = overrides
    return overrides


def reset_selector_cache():
    """Forget cached overrides (tests and config reloads)."""
    global _selector_cache
    _selector_cache = None
