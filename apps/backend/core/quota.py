"""
Crawl quota bookkeeping.

``CrawlState`` holds the counters shared by every document-processing task of
one crawl. It is only mutated through ``CrawlQuotaController``, whose methods
take the lock carried by the state, so concurrent workers (even through
separate controllers) can never push ``produced_count`` past the target.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from core.urls import canonicalize

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = 'default'


@dataclass
class CrawlState:
    produced_count: int = 0
    enqueued_count: int = 0
    visited_urls: Set[str] = field(default_factory=set)
    enqueued_urls: Set[str] = field(default_factory=set)
    # Pagination branch (start URL) -> last list page number seen
    page_numbers: Dict[str, int] = field(default_factory=dict)
    # Guards every field above; shared by all controllers on this state
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class CrawlQuotaController:
    """Decides what a list or detail result may produce, under a single lock."""

    def __init__(self, target_count: int = 100, max_pages: int = 999,
                 collect_full_details: bool = True, state: CrawlState = None):
        if target_count < 1:
            raise ValueError(f"target_count must be positive, got {target_count}")
        if max_pages < 1:
            raise ValueError(f"max_pages must be positive, got {max_pages}")
        self.target_count = target_count
        self.max_pages = max_pages
        self.collect_full_details = collect_full_details
        self.state = state if state is not None else CrawlState()

    @classmethod
    def from_config(cls, config) -> "CrawlQuotaController":
        return cls(
            target_count=config.target_record_count,
            max_pages=config.max_pages,
            collect_full_details=config.collect_full_details,
        )

    def admit_links(self, links: List[str]) -> List[str]:
        """
        Take as many list-page links as the quota still allows.

        When full details are collected the links are counted as enqueued
        detail follow-ups; otherwise they are counted as produced records and
        marked visited straight away. Links already admitted earlier are
        skipped without consuming quota.
        """
        admitted = []
        with self.state.lock:
            state = self.state
            if self.collect_full_details:
                remaining = self.target_count - state.enqueued_count
                seen = state.enqueued_urls
            else:
                remaining = self.target_count - state.produced_count
                seen = state.visited_urls
            for url in links:
                if remaining <= 0:
                    break
                key = canonicalize(url)
                if key in seen:
                    continue
                seen.add(key)
                admitted.append(url)
                remaining -= 1
            if self.collect_full_details:
                state.enqueued_count += len(admitted)
            else:
                state.produced_count += len(admitted)
        return admitted

    def record_page(self, page_number: int, branch: str = DEFAULT_BRANCH):
        with self.state.lock:
            current = self.state.page_numbers.get(branch, 0)
            self.state.page_numbers[branch] = max(current, page_number)

    def should_stop_pagination(self, page_number: int, links_found: int,
                               links_admitted: Optional[int] = None) -> bool:
        """
        Terminal check for one pagination branch after a list page.

        Past page 1, a page whose links were all admitted before ends the
        branch; sites that repeat their last page for out-of-range numbers
        would otherwise be paged through to ``max_pages``.
        """
        with self.state.lock:
            state = self.state
            if state.produced_count >= self.target_count:
                return True
            if state.enqueued_count >= self.target_count:
                return True
        if page_number > 1 and links_admitted == 0:
            return True
        return page_number >= self.max_pages or links_found == 0

    def is_done(self, url: str) -> bool:
        """Cheap pre-check before extracting a detail page; ``claim`` stays authoritative."""
        with self.state.lock:
            return (self.state.produced_count >= self.target_count
                    or canonicalize(url) in self.state.visited_urls)

    def claim(self, url: str) -> bool:
        """
        Reserve the right to emit the record for ``url``.

        Returns False (and changes nothing) when the quota is already met or
        the URL was emitted before.
        """
        key = canonicalize(url)
        with self.state.lock:
            state = self.state
            if state.produced_count >= self.target_count or key in state.visited_urls:
                return False
            state.visited_urls.add(key)
            state.produced_count += 1
            produced = state.produced_count
        logger.info(f"[quota] Progress: {produced}/{self.target_count} records")
        return True

    @property
    def quota_reached(self) -> bool:
        with self.state.lock:
            return self.state.produced_count >= self.target_count

    def snapshot(self) -> Dict[str, int]:
        with self.state.lock:
            return {
                'produced': self.state.produced_count,
                'enqueued': self.state.enqueued_count,
                'visited': len(self.state.visited_urls),
            }
