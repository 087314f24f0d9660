"""
Unit tests for the JSON-LD JobPosting locator.
"""

import json

from bs4 import BeautifulSoup

from pipeline.jsonld import find_job_posting, is_job_posting, structured_fields


def _page(*blocks) -> BeautifulSoup:
    scripts = ''.join(
        f'<script type="application/ld+json">{b if isinstance(b, str) else json.dumps(b)}</script>'
        for b in blocks
    )
    return BeautifulSoup(f'<html><head>{scripts}</head><body></body></html>', 'html.parser')


class TestFindJobPosting:
    """Test locating the JobPosting node."""

    def test_single_block(self):
        soup = _page({"@type": "JobPosting", "title": "Senior Accountant"})
        assert find_job_posting(soup)['title'] == "Senior Accountant"

    def test_malformed_block_is_skipped(self):
        """A broken block does not stop the scan of later blocks."""
        soup = _page('{ not json', {"@type": "JobPosting", "title": "Audit Associate"})
        assert find_job_posting(soup)['title'] == "Audit Associate"

    def test_graph_container(self):
        soup = _page({"@context": "https://schema.org", "@graph": [
            {"@type": "WebPage", "name": "Jobs"},
            {"@type": "JobPosting", "title": "Data Analyst"},
        ]})
        assert find_job_posting(soup)['title'] == "Data Analyst"

    def test_top_level_array(self):
        soup = _page([{"@type": "Organization"}, {"@type": "JobPosting", "title": "Driver"}])
        assert find_job_posting(soup)['title'] == "Driver"

    def test_item_list_element(self):
        soup = _page({"@type": "ItemList", "itemListElement": [
            {"@type": "ListItem", "item": {"@type": "JobPosting", "title": "Cashier"}},
        ]})
        assert find_job_posting(soup)['title'] == "Cashier"

    def test_first_posting_in_document_order(self):
        soup = _page({"@type": "JobPosting", "title": "First"}, {"@type": "JobPosting", "title": "Second"})
        assert find_job_posting(soup)['title'] == "First"

    def test_no_posting(self):
        """Absence is a normal outcome, not an error."""
        assert find_job_posting(_page({"@type": "Organization", "name": "Acme"})) is None
        assert find_job_posting(BeautifulSoup('<p>plain</p>', 'html.parser')) is None

    def test_type_array(self):
        assert is_job_posting({"@type": ["JobPosting", "Thing"]})
        assert not is_job_posting({"@type": "JobPostingDraft"})
        assert not is_job_posting({})


class TestStructuredFields:
    """Test mapping of JobPosting properties onto record fields."""

    def test_full_posting(self):
        posting = {
            "@type": "JobPosting",
            "title": " Senior  Accountant ",
            "hiringOrganization": {"@type": "Organization", "name": "Acme Nigeria Ltd"},
            "jobLocation": {"@type": "Place", "address": {
                "addressLocality": "Ikeja", "addressRegion": "Lagos", "addressCountry": "NG"}},
            "employmentType": "FULL_TIME",
            "occupationalCategory": "Accounting, Auditing & Finance",
            "datePosted": "2024-05-01T08:00:00Z",
            "baseSalary": {"currency": "NGN", "value": {"minValue": 150000, "maxValue": 250000}},
            "description": "<p>Prepare reports</p>",
        }
        fields = structured_fields(posting)
        assert fields == {
            'title': "Senior Accountant",
            'company': "Acme Nigeria Ltd",
            'location': "Ikeja, Lagos",
            'job_type': "Full Time",
            'category': "Accounting, Auditing & Finance",
            'date_posted': "2024-05-01",
            'salary_range': "NGN 150,000 - NGN 250,000",
            'description': "<p>Prepare reports</p>",
        }

    def test_empty_properties_are_omitted(self):
        fields = structured_fields({"@type": "JobPosting", "title": "Driver", "hiringOrganization": ""})
        assert fields == {'title': "Driver"}

    def test_employment_type_list(self):
        fields = structured_fields({"title": "Tutor", "employmentType": ["PART_TIME", "CONTRACTOR"]})
        assert fields['job_type'] == "Part Time, Contract"

    def test_country_only_location(self):
        fields = structured_fields({"title": "Remote Dev", "jobLocation": {"address": {"addressCountry": "NG"}}})
        assert fields['location'] == "NG"

    def test_unparseable_date_kept_raw(self):
        fields = structured_fields({"title": "Driver", "datePosted": "last week"})
        assert fields['date_posted'] == "last week"

    def test_string_organization(self):
        fields = structured_fields({"title": "Driver", "hiringOrganization": "Beta Partners"})
        assert fields['company'] == "Beta Partners"
