"""
Unit tests for crawl configuration.
"""

import pytest
from pydantic import ValidationError

from core.config import (
    SEARCH_URL, CrawlConfig, PostedWithin, build_start_url, load_selector_overrides,
)


class TestStartUrl:
    """Test search URL construction."""

    def test_all_filters(self):
        url = build_start_url(' accountant ', 'Lagos', PostedWithin.last_7d)
        assert url == "https://www.jobberman.com/jobs?q=accountant&l=Lagos&created_at=7+days"

    def test_posted_within_as_string(self):
        assert build_start_url(posted_within='24h') == "https://www.jobberman.com/jobs?created_at=1+day"

    def test_no_filters(self):
        assert build_start_url() == SEARCH_URL
        assert build_start_url('  ', '', PostedWithin.anytime) == SEARCH_URL


class TestCrawlConfig:
    """Test config model and environment loading."""

    def test_defaults(self):
        config = CrawlConfig()
        assert config.target_record_count == 100
        assert config.max_pages == 999
        assert config.collect_full_details is True
        assert config.initial_urls() == [SEARCH_URL]
        assert config.max_requests == 1000

    def test_max_requests_scales_with_target(self):
        assert CrawlConfig(target_record_count=500).max_requests == 1500

    def test_explicit_start_urls_win(self):
        config = CrawlConfig(keyword="driver", start_urls=[' https://www.jobberman.com/jobs?q=x ', ''])
        assert config.initial_urls() == ['https://www.jobberman.com/jobs?q=x']

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            CrawlConfig(target_record_count=0)
        with pytest.raises(ValidationError):
            CrawlConfig(posted_within='1y')
        with pytest.raises(ValidationError):
            CrawlConfig(target_record_count='many')

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("JOBBERMAN_KEYWORD", "accountant")
        monkeypatch.setenv("JOBBERMAN_POSTED_WITHIN", "30d")
        monkeypatch.setenv("JOBBERMAN_RESULTS_WANTED", "25")
        monkeypatch.setenv("JOBBERMAN_COLLECT_DETAILS", "false")
        monkeypatch.setenv("JOBBERMAN_START_URLS", "https://a.example/jobs, https://b.example/jobs")
        monkeypatch.delenv("JOBBERMAN_MAX_PAGES", raising=False)

        config = CrawlConfig.from_env(max_concurrency=2)
        assert config.keyword == "accountant"
        assert config.posted_within is PostedWithin.last_30d
        assert config.target_record_count == 25
        assert config.collect_full_details is False
        assert config.max_concurrency == 2
        assert config.initial_urls() == ['https://a.example/jobs', 'https://b.example/jobs']


class TestSelectorOverrides:
    """Test YAML override loading."""

    def test_valid_file(self, tmp_path):
        path = tmp_path / 'selectors.yaml'
        path.write_text("title:\n  - h1.a\n  - h1.b\nsalary_range: .pay\n", encoding='utf-8')
        assert load_selector_overrides(str(path)) == {'title': ['h1.a', 'h1.b'], 'salary_range': ['.pay']}

    def test_missing_file(self, tmp_path):
        assert load_selector_overrides(str(tmp_path / 'nope.yaml')) == {}

    def test_malformed_file(self, tmp_path):
        path = tmp_path / 'selectors.yaml'
        path.write_text("- just\n- a list\n", encoding='utf-8')
        assert load_selector_overrides(str(path)) == {}
        path.write_text("title: [unclosed\n", encoding='utf-8')
        assert load_selector_overrides(str(path)) == {}

    def test_no_file_configured(self):
        assert load_selector_overrides() == {}
