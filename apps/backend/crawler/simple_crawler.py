"""
Reference crawl engine for the extraction pipeline.

Fetches list and detail pages with httpx, runs the pipeline on worker threads
and hands finished records to a sink. Cookies, proxies and session pools are
not handled here.
"""

import asyncio
import itertools
import json
import logging
import os
import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import CrawlConfig
from core.quota import DEFAULT_BRANCH, CrawlQuotaController
from pipeline.extractor import DETAIL_STAGE, LIST_STAGE, ExtractionPipeline
from pipeline.models import ListingSeed, ListPageResult

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/114.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/115.0",
]

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
BLOCKED_STATUS_CODES = {403}

# List pages jump the queue so pagination keeps pace with detail fetching
LIST_PRIORITY = 0
DETAIL_PRIORITY = 1


class RetryableResponseError(Exception):
    """Server answered with a status worth retrying."""

    def __init__(self, url: str, status_code: int):
        super().__init__(f"HTTP {status_code} for {url}")
        self.status_code = status_code


@dataclass(order=True)
class CrawlRequest:
    priority: int
    sequence: int
    url: str = field(compare=False)
    stage: str = field(compare=False)
    page_number: int = field(default=1, compare=False)
    seed: Optional[ListingSeed] = field(default=None, compare=False)
    branch: str = field(default=DEFAULT_BRANCH, compare=False)


class SimpleCrawler:
    """
    Crawl one or more search result branches into job records.

    Concurrency is bounded by ``config.max_concurrency`` workers; each parsed
    document is processed on a worker thread, so the shared crawl state is
    guarded by the quota controller's lock.
    """

    def __init__(self, config: CrawlConfig, pipeline: Optional[ExtractionPipeline] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 sink: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.config = config
        self.pipeline = pipeline or ExtractionPipeline(CrawlQuotaController.from_config(config))
        self.controller = self.pipeline.controller
        self.transport = transport
        self.records: List[Dict[str, Any]] = []
        self.sink = sink or self.records.append
        self.failed_requests = 0
        self.blocked_responses = 0
        self._requests_made = 0
        self._seen_requests = set()
        self._sequence = itertools.count()

    def _headers(self, request: CrawlRequest) -> Dict[str, str]:
        headers = {
            "User-Agent": self.config.user_agent or random.choice(USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "same-origin" if request.stage == DETAIL_STAGE else "none",
            "Cache-Control": "no-cache",
        }
        if request.stage == DETAIL_STAGE:
            headers["Referer"] = "https://www.jobberman.com/jobs"
        return headers

    def _enqueue(self, queue: asyncio.PriorityQueue, url: str, stage: str, page_number: int = 1,
                 seed: Optional[ListingSeed] = None, branch: str = DEFAULT_BRANCH):
        key = (stage, url)
        if key in self._seen_requests:
            return
        self._seen_requests.add(key)
        priority = LIST_PRIORITY if stage == LIST_STAGE else DETAIL_PRIORITY
        queue.put_nowait(CrawlRequest(priority, next(self._sequence), url, stage,
                                      page_number=page_number, seed=seed, branch=branch))

    async def fetch_html(self, client: httpx.AsyncClient, request: CrawlRequest) -> Optional[str]:
        """
        Fetch a page, retrying transport errors and retryable status codes.

        Returns ``None`` for blocked, failed or exhausted requests; the crawl
        carries on either way.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_retries + 1),
                wait=wait_exponential(multiplier=self.config.retry_backoff, max=30),
                retry=retry_if_exception_type((httpx.TransportError, RetryableResponseError)),
                reraise=True,
            ):
                with attempt:
                    response = await client.get(request.url, headers=self._headers(request))
                    if response.status_code in RETRYABLE_STATUS_CODES:
                        raise RetryableResponseError(request.url, response.status_code)
        except (httpx.HTTPError, RetryableResponseError) as e:
            self.failed_requests += 1
            logger.warning(f"[crawler] Request failed: {request.url} - {e}")
            return None

        if response.status_code in BLOCKED_STATUS_CODES:
            self.blocked_responses += 1
            logger.warning(f"[crawler] Blocked response ({response.status_code}) for {request.url}")
            return None
        if response.status_code >= 400:
            self.failed_requests += 1
            logger.warning(f"[crawler] Request failed: {request.url} - HTTP {response.status_code}")
            return None
        return response.text

    async def _handle(self, client: httpx.AsyncClient, request: CrawlRequest, queue: asyncio.PriorityQueue):
        if request.stage == DETAIL_STAGE and self.controller.is_done(request.url):
            return
        if self._requests_made >= self.config.max_requests:
            logger.warning(f"[crawler] Request cap {self.config.max_requests} reached; skipping {request.url}")
            return
        self._requests_made += 1

        html = await self.fetch_html(client, request)
        if html is None:
            return

        result = await asyncio.to_thread(
            self.pipeline.process, html, request.stage, request.url,
            request.page_number, request.seed, request.branch
        )

        if isinstance(result, ListPageResult):
            for item in result.items:
                self.sink(item)
            for url in result.links:
                self._enqueue(queue, url, DETAIL_STAGE, seed=result.seeds_by_url.get(url),
                              branch=request.branch)
            if result.next_page_url:
                self._enqueue(queue, result.next_page_url, LIST_STAGE,
                              page_number=request.page_number + 1, branch=request.branch)
            elif not result.stop:
                logger.info(f"[crawler] No next page found on page {request.page_number}")
            return

        if result.record is not None:
            self.sink(result.record.to_item())
        for warning in result.warnings:
            logger.warning(f"[crawler] {warning}")

    async def _worker(self, client: httpx.AsyncClient, queue: asyncio.PriorityQueue):
        while True:
            request = await queue.get()
            try:
                await self._handle(client, request, queue)
            except Exception as e:
                self.failed_requests += 1
                logger.error(f"[crawler] Error processing {request.url}: {e}", exc_info=True)
            finally:
                queue.task_done()

    async def run(self) -> Dict[str, Any]:
        """Crawl until the queue drains; returns a summary of the run."""
        start_time = time.time()
        queue: asyncio.PriorityQueue = asyncio.PriorityQueue()
        for url in self.config.initial_urls():
            self._enqueue(queue, url, LIST_STAGE, page_number=1, branch=url)

        async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.request_timeout),
                                     follow_redirects=True, transport=self.transport) as client:
            workers = [asyncio.create_task(self._worker(client, queue))
                       for _ in range(self.config.max_concurrency)]
            try:
                await queue.join()
            finally:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)

        summary = self.controller.snapshot()
        summary.update({
            'failed_requests': self.failed_requests,
            'blocked_responses': self.blocked_responses,
            'elapsed_seconds': round(time.time() - start_time, 2),
        })
        logger.info(f"[crawler] Scraping completed. Total jobs saved: {summary['produced']}")
        if summary['produced'] == 0:
            logger.warning("[crawler] No jobs were scraped. Check selectors or website structure.")
        return summary


def write_jsonl(records: Iterable[Dict[str, Any]], path: Path) -> int:
    """Write records as JSON Lines; returns the number written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open('w', encoding='utf-8') as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False))
            f.write('\n')
            count += 1
    return count


async def run_crawl(config: Optional[CrawlConfig] = None) -> List[Dict[str, Any]]:
    crawler = SimpleCrawler(config or CrawlConfig.from_env())
    await crawler.run()
    return crawler.records


def main():
    logging.basicConfig(level=logging.INFO)
    records = asyncio.run(run_crawl())
    output = Path(os.getenv("JOBBERMAN_OUTPUT", "data/jobs.jsonl"))
    written = write_jsonl(records, output)
    logger.info(f"[crawler] Wrote {written} records to {output}")


if __name__ == "__main__":
    main()
