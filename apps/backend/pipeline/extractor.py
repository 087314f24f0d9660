"""
Extraction pipeline entry point.

The crawl engine hands over one fetched document at a time together with its
stage label:

- ``list``: job links and card seeds are collected, the quota controller
  decides how many may be pushed or enqueued, and the next list page is
  resolved unless the pagination branch is finished.
- ``detail``: the selector cascade and description sanitizer build a base
  record, JSON-LD overrides it, and the quota controller decides whether the
  record is emitted.

All work here is synchronous CPU work on an already fetched document.
"""

import html
import logging
from typing import Optional, Union

from bs4 import BeautifulSoup

from core.quota import DEFAULT_BRANCH, CrawlQuotaController
from core.urls import canonicalize
from .heuristics import classify_card
from .jsonld import find_job_posting, structured_fields
from .links import collect_job_links
from .merge import merge
from .models import SOURCE_NAME, DetailPageResult, JobFields, ListingSeed, ListPageResult
from .pagination import next_page_url
from .sanitizer import describe
from .selectors import extract_cascade_fields

logger = logging.getLogger(__name__)

LIST_STAGE = 'list'
DETAIL_STAGE = 'detail'

Document = Union[str, bytes, BeautifulSoup]


def parse_document(document: Document) -> BeautifulSoup:
    if isinstance(document, BeautifulSoup):
        return document
    if isinstance(document, (str, bytes)):
        return BeautifulSoup(document, 'html.parser')
    raise ValueError(f"Unsupported document type: {type(document).__name__}")


class ExtractionPipeline:
    """Stateless per call; all shared state lives in the quota controller."""

    def __init__(self, controller: Optional[CrawlQuotaController] = None):
        self.controller = controller or CrawlQuotaController()

    def process(self, document: Document, stage: str, current_url: str,
                page_number: int = 1, seed: Optional[ListingSeed] = None,
                branch: str = DEFAULT_BRANCH) -> Union[ListPageResult, DetailPageResult]:
        stage = (stage or '').lower()
        if stage == LIST_STAGE:
            return self.process_list_page(document, current_url, page_number, branch)
        if stage == DETAIL_STAGE:
            return self.process_detail_page(document, current_url, seed)
        raise ValueError(f"Unknown stage label: {stage!r}")

    def process_list_page(self, document: Document, current_url: str,
                          page_number: int = 1, branch: str = DEFAULT_BRANCH) -> ListPageResult:
        soup = parse_document(document)
        pairs = collect_job_links(soup, current_url)
        logger.info(f"[extractor] LIST page {page_number}: found {len(pairs)} links")
        if not pairs and page_number > 1:
            logger.warning(f"[extractor] Page {page_number} has no jobs; this may be the end of results")

        seeds = {url: classify_card(card, current_url) for url, card in pairs}
        admitted = self.controller.admit_links([url for url, _ in pairs])

        result = ListPageResult()
        if self.controller.collect_full_details:
            result.links = admitted
            result.seeds_by_url = {url: seeds[url] for url in admitted}
        else:
            for url in admitted:
                item = {'url': url, **seeds[url].model_dump()}
                item['_source'] = SOURCE_NAME
                result.items.append(item)

        self.controller.record_page(page_number, branch)
        if self.controller.should_stop_pagination(page_number, len(pairs), len(admitted)):
            logger.info(f"[extractor] Stopping pagination at page {page_number}")
            result.stop = True
            return result

        result.next_page_url = next_page_url(soup, current_url)
        logger.info(f"[extractor] Next list page {page_number + 1}: {result.next_page_url}")
        return result

    def extract_record_fields(self, soup: BeautifulSoup, url: str):
        """Cascade and structured tiers of a detail page."""
        cascade, container = extract_cascade_fields(soup)
        if container is not None:
            cascade.update(describe(container, url) or {})

        structured: JobFields = {}
        posting = find_job_posting(soup)
        if posting is not None:
            logger.debug(f"[extractor] Using JSON-LD JobPosting for {url}")
            structured = structured_fields(posting)
            description = structured.pop('description', '')
            # JSON-LD descriptions sometimes carry entity-escaped HTML
            if '&lt;' in description and '<' not in description:
                description = html.unescape(description)
            if description:
                structured.update(describe(description, url) or {})
        return cascade, structured

    def process_detail_page(self, document: Document, current_url: str,
                            seed: Optional[ListingSeed] = None) -> DetailPageResult:
        url = canonicalize(current_url)
        if self.controller.is_done(url):
            return DetailPageResult(skipped=True)

        soup = parse_document(document)
        cascade, structured = self.extract_record_fields(soup, url)
        record = merge(url, seed.as_fields() if seed else {}, cascade, structured)
        if record is None:
            return DetailPageResult(warnings=[f"missing title: {url}"])

        if not self.controller.claim(url):
            return DetailPageResult(skipped=True)
        logger.info(f"[extractor] Saved: {record.title}")
        return DetailPageResult(record=record)
