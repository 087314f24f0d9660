"""
JSON-LD locator.

Finds the Schema.org JobPosting block of a detail page and maps it onto
record fields. Structured data is the most trusted source of a detail page.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from core.text import normalize
from .models import JobFields
from .salary import salary_from_structured

logger = logging.getLogger(__name__)

JOB_POSTING_TYPE = 'JobPosting'

EMPLOYMENT_TYPES = {
    'FULL_TIME': 'Full Time',
    'PART_TIME': 'Part Time',
    'CONTRACTOR': 'Contract',
    'TEMPORARY': 'Temporary',
    'INTERN': 'Internship',
    'VOLUNTEER': 'Volunteer',
    'PER_DIEM': 'Per Diem',
    'OTHER': 'Other',
}


def _iter_blocks(soup: BeautifulSoup):
    """Yield the parsed value of every ld+json script, skipping broken ones."""
    for script in soup.find_all('script', type='application/ld+json'):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            yield json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"[jsonld] Skipping malformed block: {e}")
            continue


def _flatten(data: Any) -> List[Dict]:
    """One level of flattening: arrays, ``@graph`` and ``itemListElement`` containers."""
    items: List[Dict] = []
    if isinstance(data, list):
        items.extend(item for item in data if isinstance(item, dict))
    elif isinstance(data, dict):
        items.append(data)
        graph = data.get('@graph')
        if isinstance(graph, list):
            items.extend(item for item in graph if isinstance(item, dict))
        elements = data.get('itemListElement')
        if isinstance(elements, list):
            for element in elements:
                if isinstance(element, dict) and isinstance(element.get('item'), dict):
                    items.append(element['item'])
    return items


def is_job_posting(item: Dict) -> bool:
    """Type equals, or is an array containing, the JobPosting marker."""
    item_type = item.get('@type', '')
    if isinstance(item_type, str):
        return item_type == JOB_POSTING_TYPE
    if isinstance(item_type, list):
        return JOB_POSTING_TYPE in item_type
    return False


def find_job_posting(soup: BeautifulSoup) -> Optional[Dict]:
    """
    First JobPosting node in document order, or ``None``.

    ``None`` means no enrichment is available; it is not an error.
    """
    for data in _iter_blocks(soup):
        for item in _flatten(data):
            if is_job_posting(item):
                return item
    return None


def _text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get('name') or value.get('legalName') or ''
    if isinstance(value, list):
        value = ', '.join(_text(v) for v in value if _text(v))
    return normalize(str(value)) if value is not None else ''


def _location(job_location: Any) -> str:
    if isinstance(job_location, list):
        job_location = job_location[0] if job_location else None
    if isinstance(job_location, str):
        return normalize(job_location)
    if not isinstance(job_location, dict):
        return ''
    address = job_location.get('address')
    if isinstance(address, str):
        return normalize(address)
    if isinstance(address, dict):
        parts = [normalize(str(address.get(key) or ''))
                 for key in ('addressLocality', 'addressRegion')]
        parts = [p for p in parts if p]
        if parts:
            return ', '.join(parts)
        return _text(address.get('addressCountry'))
    return _text(job_location.get('name'))


def _employment_type(value: Any) -> str:
    values = value if isinstance(value, list) else [value]
    labels = []
    for raw in values:
        if not raw:
            continue
        key = str(raw).strip().upper().replace('-', '_').replace(' ', '_')
        label = EMPLOYMENT_TYPES.get(key, normalize(str(raw)))
        if label and label not in labels:
            labels.append(label)
    return ', '.join(labels)


def _date(value: Any) -> str:
    """ISO ``YYYY-MM-DD`` when parseable, else the raw text."""
    raw = normalize(str(value)) if value else ''
    if not raw:
        return ''
    try:
        return date_parser.isoparse(raw).strftime('%Y-%m-%d')
    except (ValueError, OverflowError):
        logger.debug(f"[jsonld] Keeping unparsed datePosted {raw!r}")
        return raw


def structured_fields(job_data: Dict) -> JobFields:
    """
    Map a JobPosting node onto record fields.

    ``description`` holds the raw (unsanitized) HTML of the posting; the
    extractor turns it into the html/text pair.
    """
    fields: JobFields = {
        'title': _text(job_data.get('title') or job_data.get('name')),
        'company': _text(job_data.get('hiringOrganization')),
        'location': _location(job_data.get('jobLocation')),
        'job_type': _employment_type(job_data.get('employmentType')),
        'category': _text(job_data.get('occupationalCategory') or job_data.get('industry')),
        'date_posted': _date(job_data.get('datePosted')),
        'description': str(job_data.get('description') or '').strip(),
    }
    salary = salary_from_structured(job_data.get('baseSalary'))
    fields['salary_range'] = salary.render() if salary else ''
    return {name: value for name, value in fields.items() if value}
