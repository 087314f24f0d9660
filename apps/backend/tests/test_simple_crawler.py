"""
Tests for the reference crawl engine against an in-memory transport.
"""

import json

import httpx
import pytest

from conftest import load_fixture
from core.config import CrawlConfig
from crawler.simple_crawler import USER_AGENTS, CrawlRequest, SimpleCrawler, write_jsonl
from pipeline.extractor import DETAIL_STAGE, LIST_STAGE

START_URL = 'https://www.jobberman.com/jobs?q=accountant'


def _detail_page(title: str) -> str:
    return f'<html><body><article><h1 class="job-header__title">{title}</h1>' \
           f'<div class="job-details__main"><p>About the {title} role.</p></div></article></body></html>'


def _config(**overrides) -> CrawlConfig:
    values = dict(start_urls=[START_URL], target_record_count=10, max_concurrency=3,
                  max_retries=2, retry_backoff=0)
    values.update(overrides)
    return CrawlConfig(**values)


class SiteHandler:
    """Serves the list fixture, detail pages and an empty second page; records requests."""

    def __init__(self, overrides=None):
        self.requests = []
        self.overrides = overrides or {}
        self.list_html = load_fixture('list_page.html')

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(request)
        if url in self.overrides:
            # (status, text) pairs served in order; the last one repeats
            responses = self.overrides[url]
            status, text = responses.pop(0) if len(responses) > 1 else responses[0]
            return httpx.Response(status, text=text)
        if request.url.path.startswith('/listings/'):
            slug = request.url.path.rsplit('/', 1)[-1]
            return httpx.Response(200, text=_detail_page(slug.replace('-', ' ').title()))
        if url == START_URL:
            return httpx.Response(200, text=self.list_html)
        return httpx.Response(200, text='<html><body><p>No jobs found</p></body></html>')

    def paths(self):
        return [request.url.path for request in self.requests]


class TestCrawlRun:
    """Test full crawl runs."""

    @pytest.mark.asyncio
    async def test_list_then_details(self):
        handler = SiteHandler()
        crawler = SimpleCrawler(_config(), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 2
        assert summary['enqueued'] == 2
        assert summary['visited'] == 2
        assert summary['failed_requests'] == 0
        titles = sorted(record['title'] for record in crawler.records)
        assert titles == ["Audit Associate Xy9", "Senior Accountant Abc12"]

        accountant = next(r for r in crawler.records if r['title'] == "Senior Accountant Abc12")
        assert accountant['company'] == "Acme Ltd"
        assert accountant['salary_range'] == "NGN 150,000 - NGN 250,000"
        assert accountant['description_text'] == "About the Senior Accountant Abc12 role."
        assert accountant['_source'] == 'jobberman.com'

        # Page 2 is empty, which ends the branch
        assert handler.paths().count('/jobs') == 2

    @pytest.mark.asyncio
    async def test_target_bounds_records(self):
        handler = SiteHandler()
        crawler = SimpleCrawler(_config(target_record_count=1), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 1
        assert len(crawler.records) == 1
        assert handler.paths().count('/jobs') == 1

    @pytest.mark.asyncio
    async def test_push_mode_skips_detail_requests(self):
        handler = SiteHandler()
        crawler = SimpleCrawler(_config(collect_full_details=False), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 2
        assert [r['title'] for r in crawler.records] == ["Senior Accountant (Lagos Office)", "Audit Associate"]
        assert not any(path.startswith('/listings/') for path in handler.paths())

    @pytest.mark.asyncio
    async def test_custom_sink(self):
        collected = []
        crawler = SimpleCrawler(_config(), transport=httpx.MockTransport(SiteHandler()), sink=collected.append)
        await crawler.run()
        assert len(collected) == 2
        assert crawler.records == []


class TestFetchFailures:
    """Test retries, blocking and failed requests."""

    @pytest.mark.asyncio
    async def test_retryable_status_retried(self):
        detail_url = 'https://www.jobberman.com/listings/audit-associate-xy9'
        handler = SiteHandler({detail_url: [
            (503, ""), (200, _detail_page("Audit Associate")),
        ]})
        crawler = SimpleCrawler(_config(), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 2
        assert summary['failed_requests'] == 0
        assert handler.paths().count('/listings/audit-associate-xy9') == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        detail_url = 'https://www.jobberman.com/listings/audit-associate-xy9'
        handler = SiteHandler({detail_url: [(500, "")]})
        crawler = SimpleCrawler(_config(max_retries=2), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 1
        assert summary['failed_requests'] == 1
        assert handler.paths().count('/listings/audit-associate-xy9') == 3

    @pytest.mark.asyncio
    async def test_blocked_response_not_retried(self):
        handler = SiteHandler({START_URL: [(403, "Forbidden")]})
        crawler = SimpleCrawler(_config(), transport=httpx.MockTransport(handler))
        summary = await crawler.run()

        assert summary['produced'] == 0
        assert summary['blocked_responses'] == 1
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_counted(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        crawler = SimpleCrawler(_config(max_retries=1), transport=httpx.MockTransport(handler))
        summary = await crawler.run()
        assert summary['failed_requests'] == 1
        assert summary['produced'] == 0


class TestHelpers:
    """Test request headers and output helpers."""

    def test_rotating_user_agent(self):
        crawler = SimpleCrawler(_config())
        headers = crawler._headers(CrawlRequest(0, 0, START_URL, LIST_STAGE))
        assert headers['User-Agent'] in USER_AGENTS
        assert 'Referer' not in headers

    def test_custom_user_agent_and_referer(self):
        crawler = SimpleCrawler(_config(user_agent="jobs-bot/1.0"))
        headers = crawler._headers(CrawlRequest(1, 0, START_URL, DETAIL_STAGE))
        assert headers['User-Agent'] == "jobs-bot/1.0"
        assert headers['Referer'] == "https://www.jobberman.com/jobs"

    def test_list_requests_sort_first(self):
        detail = CrawlRequest(1, 0, 'https://www.jobberman.com/listings/1', DETAIL_STAGE)
        listing = CrawlRequest(0, 1, START_URL, LIST_STAGE)
        assert sorted([detail, listing])[0] is listing

    def test_write_jsonl(self, tmp_path):
        path = tmp_path / 'out' / 'jobs.jsonl'
        written = write_jsonl([{'title': "Driver", 'salary_range': "₦ 80,000"}, {'title': "Cook"}], path)
        assert written == 2
        lines = path.read_text(encoding='utf-8').splitlines()
        assert json.loads(lines[0]) == {'title': "Driver", 'salary_range': "₦ 80,000"}
        assert '₦' in lines[0]
